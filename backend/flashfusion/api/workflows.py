# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow API Routes

Document CRUD (full replacement only), execution and analytics.
"""

from typing import List, Dict, Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from flashfusion.core.dependencies import get_workflow_service, get_analytics_service
from flashfusion.core.errors import ExecutionError, NotFoundError, ValidationError, sanitize_error_for_user
from flashfusion.core.logging import get_api_logger
from flashfusion.services.analytics_service import WorkflowAnalyticsService
from flashfusion.services.workflow_service import WorkflowExecutionService
from flashfusion.workflow.models import ExecuteWorkflowRequest, ExecutionResult, NodeConfigChanges

router = APIRouter(prefix="/workflows", tags=["workflows"])
logger = get_api_logger()


@router.get("")
async def list_workflows(
    service: WorkflowExecutionService = Depends(get_workflow_service)
) -> List[Dict[str, Any]]:
    """List all workflows"""
    return await service.list_workflows()


@router.post("")
async def create_workflow(
    workflow_data: Dict[str, Any],
    service: WorkflowExecutionService = Depends(get_workflow_service)
) -> Dict[str, Any]:
    """Create a new workflow"""
    try:
        return await service.create_workflow(workflow_data)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{workflow_id}")
async def get_workflow(
    workflow_id: str,
    service: WorkflowExecutionService = Depends(get_workflow_service)
) -> Dict[str, Any]:
    """Get a specific workflow document"""
    try:
        return await service.get_workflow(workflow_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/{workflow_id}")
async def replace_workflow(
    workflow_id: str,
    workflow_data: Dict[str, Any],
    service: WorkflowExecutionService = Depends(get_workflow_service)
) -> Dict[str, Any]:
    """Replace a workflow document"""
    try:
        return await service.replace_workflow(workflow_id, workflow_data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/{workflow_id}/nodes/{node_id}/config")
async def apply_node_config_changes(
    workflow_id: str,
    node_id: str,
    request: NodeConfigChanges,
    service: WorkflowExecutionService = Depends(get_workflow_service)
) -> Dict[str, Any]:
    """Merge config changes into one node"""
    try:
        return await service.apply_node_config_changes(workflow_id, node_id, request.changes)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{workflow_id}/execute", response_model=ExecutionResult)
async def execute_workflow(
    workflow_id: str,
    request: Optional[ExecuteWorkflowRequest] = None,
    service: WorkflowExecutionService = Depends(get_workflow_service)
) -> ExecutionResult:
    """Execute a workflow"""
    input_data = request.input_data if request else {}
    try:
        return await service.execute_workflow(workflow_id, input_data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ExecutionError as e:
        raise _run_failed(workflow_id, e)
    except ValidationError as e:
        # Structure errors found mid-run carry the id of the failed execution
        if getattr(e, "execution_id", None):
            raise _run_failed(workflow_id, e)
        raise HTTPException(status_code=400, detail=str(e))


def _run_failed(workflow_id: str, error) -> HTTPException:
    logger.warning(f"Workflow {workflow_id} failed: {error}")
    return HTTPException(status_code=422, detail={
        "message": sanitize_error_for_user(error),
        "execution_id": error.execution_id,
    })


@router.get("/{workflow_id}/executions")
async def list_executions(
    workflow_id: str,
    limit: Optional[int] = Query(None, ge=1),
    service: WorkflowExecutionService = Depends(get_workflow_service)
) -> List[Dict[str, Any]]:
    """List executions of a workflow, newest first"""
    try:
        await service.get_workflow(workflow_id)
        return await service.list_executions(workflow_id, limit=limit)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{workflow_id}/analytics")
async def analyze_workflow(
    workflow_id: str,
    service: WorkflowExecutionService = Depends(get_workflow_service),
    analytics: WorkflowAnalyticsService = Depends(get_analytics_service)
) -> Dict[str, Any]:
    """Summarize execution history of a workflow"""
    try:
        await service.get_workflow(workflow_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return await analytics.analyze_executions(workflow_id)
