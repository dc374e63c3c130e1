# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared fixtures: temporary stores, stub collaborators and graph builders.
"""

import json
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import httpx
import pytest

from flashfusion.services.workflow_service import WorkflowExecutionService
from flashfusion.store import EntityStore
from flashfusion.workflow.execution_logger import ExecutionLogger
from flashfusion.workflow.executor import WorkflowExecutor
from flashfusion.workflow.handlers import NodeHandlers


def node(node_id: str, node_type: str, **config: Any) -> Dict[str, Any]:
    """Node document as produced by the builder"""
    return {
        "id": node_id,
        "type": node_type,
        "data": {"label": node_id, "config": config},
        "position": {"x": 0, "y": 0},
    }


def edge(source: str, target: str, handle: Optional[str] = None) -> Dict[str, Any]:
    data = {"id": f"{source}-{target}", "source": source, "target": target}
    if handle is not None:
        data["sourceHandle"] = handle
    return data


def workflow_doc(
    nodes: List[Dict[str, Any]],
    edges: List[Dict[str, Any]],
    variables: Optional[Dict[str, Any]] = None,
    workflow_id: str = "wf_test",
    name: str = "Test Workflow"
) -> Dict[str, Any]:
    return {
        "id": workflow_id,
        "name": name,
        "nodes": nodes,
        "edges": edges,
        "variables": variables or {},
    }


def json_transport(payload: Any = None, status_code: int = 200, calls: Optional[list] = None):
    """MockTransport answering every request with the same JSON body"""
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, json=payload)

    return httpx.MockTransport(handler)


@pytest.fixture
def temp_data_dir():
    """Create temporary data directory"""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def workflow_store(temp_data_dir):
    return EntityStore(temp_data_dir / "workflows", "Workflow", id_prefix="wf")


@pytest.fixture
def execution_store(temp_data_dir):
    return EntityStore(temp_data_dir / "executions", "WorkflowExecution", id_prefix="exec")


@pytest.fixture
def mock_llm():
    """LLM collaborator stub"""
    llm = AsyncMock()
    llm.invoke_llm = AsyncMock(return_value={"summary": "stubbed"})
    return llm


@pytest.fixture
def http_calls():
    return []


@pytest.fixture
def http_client(http_calls):
    return httpx.AsyncClient(transport=json_transport({"ok": True}, calls=http_calls))


@pytest.fixture
def handlers(mock_llm, http_client):
    return NodeHandlers(mock_llm, http_client)


@pytest.fixture
def executor(handlers, execution_store):
    return WorkflowExecutor(handlers, ExecutionLogger(execution_store))


@pytest.fixture
def service(workflow_store, execution_store, executor):
    return WorkflowExecutionService(workflow_store, execution_store, executor)


def read_json(path: Path) -> Dict[str, Any]:
    return json.loads(path.read_text())
