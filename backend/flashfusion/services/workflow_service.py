# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Execution Service - runs workflows and manages their documents.

Single responsibility: workflow lifecycle around the graph walker.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from flashfusion.core.errors import ExecutionError, NotFoundError, ValidationError
from flashfusion.core.logging import get_service_logger, log_event
from flashfusion.store import EntityStore, utc_now_iso
from flashfusion.workflow.exceptions import (
    ExecutionNotFoundError,
    WorkflowNotFoundError,
    WorkflowValidationError,
)
from flashfusion.workflow.executor import WorkflowExecutor
from flashfusion.workflow.models import (
    ExecutionResult,
    ExecutionStatus,
    Workflow,
    WorkflowExecution,
)
from flashfusion.workflow.validation import validate_workflow

logger = get_service_logger("workflow")

# Owned by the engine; never taken from a client document
STATS_FIELDS = ("execution_count", "success_count", "success_rate", "last_executed")


def new_execution_id() -> str:
    return f"exec_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


class WorkflowExecutionService:
    """
    Executes workflows and manages workflow documents.

    Responsibilities:
    - Execute a workflow by id and persist the execution record
    - Maintain per-workflow execution statistics
    - Create, read and replace workflow documents (no partial patches)
    - Apply node config changes proposed by analytics
    - Read execution history
    """

    def __init__(self, workflows: EntityStore, executions: EntityStore, executor: WorkflowExecutor):
        """
        Initialize WorkflowExecutionService.

        Args:
            workflows: Store holding Workflow documents
            executions: Store holding WorkflowExecution documents
            executor: Graph walker
        """
        self.workflows = workflows
        self.executions = executions
        self.executor = executor

    # ========================================================================
    # Execution
    # ========================================================================

    async def execute_workflow(
        self,
        workflow_id: str,
        input_data: Optional[Dict[str, Any]] = None
    ) -> ExecutionResult:
        """
        Execute a workflow.

        Args:
            workflow_id: Workflow to run
            input_data: Values layered over the workflow's variables

        Returns:
            ExecutionResult with the final context

        Raises:
            WorkflowNotFoundError: If the workflow does not exist
            WorkflowEngineError / WorkflowValidationError: If the run fails;
                the execution record is marked failed first
        """
        input_data = dict(input_data or {})
        workflow = await self._load_workflow(workflow_id)

        execution_id = new_execution_id()
        variables = {**workflow.variables, **input_data}
        execution = WorkflowExecution(
            id=execution_id,
            workflow_id=workflow_id,
            status=ExecutionStatus.RUNNING,
            input_data=input_data,
            variables=variables,
            started_at=utc_now_iso(),
        )
        await self.executions.create(execution.model_dump(mode="json"))
        started = time.perf_counter()

        log_event(logger, "Starting workflow execution", execution_id=execution_id, workflow_id=workflow_id)

        try:
            result = await self.executor.execute_nodes(
                workflow.nodes,
                workflow.edges,
                execution_id,
                variables
            )
        except Exception as e:
            await self._mark_failed(execution_id, e, started)
            await self._update_workflow_stats(workflow_id, success=False)
            log_event(
                logger, "Workflow execution failed", level="ERROR",
                execution_id=execution_id, workflow_id=workflow_id, error=str(e)
            )
            if isinstance(e, (ExecutionError, WorkflowValidationError)) and e.execution_id is None:
                e.execution_id = execution_id
            raise

        await self.executions.update(execution_id, {
            "status": ExecutionStatus.COMPLETED.value,
            "output_data": result,
            "completed_at": utc_now_iso(),
            "duration_ms": _elapsed_ms(started),
        })
        await self._update_workflow_stats(workflow_id, success=True)

        log_event(logger, "Workflow execution completed", execution_id=execution_id, workflow_id=workflow_id)
        return ExecutionResult(success=True, execution_id=execution_id, result=result)

    async def _mark_failed(self, execution_id: str, error: Exception, started: float) -> None:
        try:
            await self.executions.update(execution_id, {
                "status": ExecutionStatus.FAILED.value,
                "error_message": str(error),
                "completed_at": utc_now_iso(),
                "duration_ms": _elapsed_ms(started),
            })
        except Exception:
            # Keep the run's own error as the one the caller sees
            logger.exception(f"Failed to persist failure of execution {execution_id}")

    async def _update_workflow_stats(self, workflow_id: str, success: bool) -> None:
        """Best effort: failures are logged and never mask the run outcome"""
        now = utc_now_iso()

        def apply(record):
            previous = record.get("execution_count") or 0
            successes = record.get("success_count")
            if successes is None:
                successes = round((record.get("success_rate") or 0) * previous)

            count = previous + 1
            successes += 1 if success else 0
            record.update(
                execution_count=count,
                success_count=successes,
                success_rate=successes / count,
                last_executed=now,
            )
            return record

        try:
            await self.workflows.mutate(workflow_id, apply)
        except Exception:
            logger.warning(f"Failed to update workflow stats for {workflow_id}", exc_info=True)

    # ========================================================================
    # Workflow documents
    # ========================================================================

    async def create_workflow(self, workflow_data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and store a new workflow document"""
        workflow = self._parse_workflow(workflow_data)
        validate_workflow(workflow)

        document = workflow.model_dump(mode="json", by_alias=True, exclude_none=True)
        for field in STATS_FIELDS:
            document.pop(field, None)
        if not document.get("id"):
            document["id"] = self.workflows.new_id()

        record = await self.workflows.create(document)
        logger.info(f"Created workflow: {record['id']}")
        return record

    async def get_workflow(self, workflow_id: str) -> Dict[str, Any]:
        record = await self.workflows.get(workflow_id)
        if record is None:
            raise WorkflowNotFoundError(workflow_id)
        return record

    async def list_workflows(self) -> List[Dict[str, Any]]:
        """List workflow summaries"""
        workflows = []
        for record in await self.workflows.filter():
            workflows.append({
                "id": record.get("id"),
                "name": record.get("name"),
                "description": record.get("description"),
                "version": record.get("version", 1),
                "node_count": len(record.get("nodes", [])),
                "execution_count": record.get("execution_count", 0),
                "success_rate": record.get("success_rate", 0.0),
                "last_executed": record.get("last_executed"),
            })

        logger.info(f"Listed {len(workflows)} workflows")
        return workflows

    async def replace_workflow(self, workflow_id: str, workflow_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Replace a workflow document wholesale.

        Statistics are carried over and the version is bumped.
        """
        await self.get_workflow(workflow_id)

        workflow = self._parse_workflow({**workflow_data, "id": workflow_id})
        validate_workflow(workflow)

        document = workflow.model_dump(mode="json", by_alias=True, exclude_none=True)
        for field in STATS_FIELDS:
            document.pop(field, None)

        # Engine-owned fields come from the locked record, not an earlier read
        def swap(record):
            replaced = {**document, "created_date": record.get("created_date")}
            for field in STATS_FIELDS:
                if field in record:
                    replaced[field] = record[field]
            replaced["version"] = (record.get("version") or 1) + 1
            return replaced

        record = await self.workflows.mutate(workflow_id, swap)
        logger.info(f"Replaced workflow: {workflow_id} (version {record['version']})")
        return record

    async def apply_node_config_changes(
        self,
        workflow_id: str,
        node_id: str,
        changes: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Shallow-merge ``changes`` into one node's config and store the
        whole document.

        Raises:
            WorkflowNotFoundError: Unknown workflow
            NotFoundError: Unknown node
        """
        document = await self.get_workflow(workflow_id)

        nodes = [dict(node) for node in document.get("nodes", [])]
        index = next((i for i, node in enumerate(nodes) if node.get("id") == node_id), None)
        if index is None:
            raise NotFoundError("Node", node_id)

        data = dict(nodes[index].get("data") or {})
        data["config"] = {**(data.get("config") or {}), **changes}
        nodes[index]["data"] = data

        record = await self.replace_workflow(workflow_id, {**document, "nodes": nodes})
        logger.info(f"Applied config changes to {workflow_id}/{node_id}: {sorted(changes)}")
        return record

    # ========================================================================
    # Execution history
    # ========================================================================

    async def get_execution(self, execution_id: str) -> Dict[str, Any]:
        record = await self.executions.get(execution_id)
        if record is None:
            raise ExecutionNotFoundError(execution_id)
        return record

    async def list_executions(self, workflow_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Executions of a workflow, newest first"""
        if limit is not None and limit < 1:
            raise ValidationError(f"limit must be a positive integer, got {limit}", field="limit")

        records = await self.executions.filter(workflow_id=workflow_id)
        records.sort(key=lambda r: r.get("started_at") or "", reverse=True)
        return records[:limit] if limit else records

    # ========================================================================
    # Helper Methods
    # ========================================================================

    async def _load_workflow(self, workflow_id: str) -> Workflow:
        record = await self.workflows.get(workflow_id)
        if record is None:
            raise WorkflowNotFoundError(workflow_id)
        return self._parse_workflow(record)

    @staticmethod
    def _parse_workflow(workflow_data: Dict[str, Any]) -> Workflow:
        try:
            return Workflow.model_validate(workflow_data)
        except PydanticValidationError as e:
            raise WorkflowValidationError(f"Invalid workflow document: {e}")


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
