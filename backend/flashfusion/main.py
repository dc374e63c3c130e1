# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
FastAPI application - workflow engine API.

``create_app`` wires every collaborator explicitly; nothing below the
HTTP layer reads global state.
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from flashfusion.api import executions, workflows
from flashfusion.core.config import Config, get_config
from flashfusion.core.errors import FlashFusionError
from flashfusion.core.logging import get_logger
from flashfusion.services.analytics_service import WorkflowAnalyticsService
from flashfusion.services.egress import EgressPolicy
from flashfusion.services.llm_service import LLMService
from flashfusion.services.workflow_service import WorkflowExecutionService
from flashfusion.store import EntityStore
from flashfusion.workflow.execution_logger import ExecutionLogger
from flashfusion.workflow.executor import WorkflowExecutor
from flashfusion.workflow.handlers import NodeHandlers


def build_llm_service(config: Config) -> LLMService:
    from anthropic import AsyncAnthropic

    return LLMService(
        AsyncAnthropic(api_key=config.get_anthropic_api_key()),
        default_model=config.llm_model,
        max_tokens=config.llm_max_tokens,
        cache_ttl_seconds=config.llm_cache_ttl_seconds,
    )


def create_app(
    config: Optional[Config] = None,
    llm=None,
    http_client: Optional[httpx.AsyncClient] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Configuration (defaults to the YAML-loaded global config)
        llm: LLM collaborator (defaults to LLMService over the Anthropic API)
        http_client: Client for api_call nodes (defaults to a new AsyncClient)
    """
    config = config or get_config()
    logger = get_logger("flashfusion.app", log_level=config.log_level, log_format=config.log_format)

    owns_http_client = http_client is None
    http_client = http_client or httpx.AsyncClient(timeout=config.http_timeout)
    llm = llm or build_llm_service(config)

    workflow_store = EntityStore(config.workflows_path, "Workflow", id_prefix="wf")
    execution_store = EntityStore(config.executions_path, "WorkflowExecution", id_prefix="exec")

    handlers = NodeHandlers(
        llm,
        http_client,
        egress_policy=EgressPolicy(config.allowed_hosts),
        strict_expressions=config.strict_expressions,
        strict_interpolation=config.strict_interpolation,
    )
    executor = WorkflowExecutor(handlers, ExecutionLogger(execution_store))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"FlashFusion workflow engine started (data_dir={config.data_dir})")
        yield
        if owns_http_client:
            await http_client.aclose()

    app = FastAPI(
        title="FlashFusion Workflow Engine",
        description="Executes agent workflows with conditional logic and external integrations",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.workflow_service = WorkflowExecutionService(workflow_store, execution_store, executor)
    app.state.analytics_service = WorkflowAnalyticsService(execution_store)

    @app.exception_handler(FlashFusionError)
    async def flashfusion_error_handler(request: Request, exc: FlashFusionError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.get("/health")
    async def health():
        return {"status": "healthy", "service": "flashfusion-workflows"}

    app.include_router(workflows.router)
    app.include_router(executions.router)

    return app


def main() -> None:
    """Run the API server with uvicorn."""
    import uvicorn
    from dotenv import load_dotenv

    load_dotenv()
    config = get_config()
    uvicorn.run(create_app(config), host=config.service_host, port=config.service_port)


if __name__ == "__main__":
    main()
