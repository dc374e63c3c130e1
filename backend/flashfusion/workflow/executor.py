# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Executor

Single-path graph walker: starts at the trigger, runs one node at a time,
merges each node's output into the shared context and follows the edge
chosen by the resolver until no edge remains.
"""

import time
from typing import Any, Dict, List

from flashfusion.core.logging import get_service_logger
from .edges import find_next_edge
from .exceptions import (
    CircularDependencyError,
    MissingTriggerError,
    NodeExecutionError,
    UnknownNodeTypeError,
    WorkflowValidationError,
)
from .execution_logger import ExecutionLogger
from .handlers import NodeHandlers
from .models import ExecutionStatus, NodeType, WorkflowEdge, WorkflowNode

logger = get_service_logger("workflow-executor")


class WorkflowExecutor:
    """
    Sequential workflow executor.

    No node may run twice in one execution; a revisit fails the run with
    CircularDependencyError naming the revisited node.
    """

    def __init__(self, handlers: NodeHandlers, execution_logger: ExecutionLogger):
        self.handlers = handlers
        self.execution_logger = execution_logger

    async def execute_nodes(
        self,
        nodes: List[WorkflowNode],
        edges: List[WorkflowEdge],
        execution_id: str,
        variables: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Walk the graph from its trigger node.

        Returns:
            Final context

        Raises:
            MissingTriggerError: No trigger node (nothing is executed)
            CircularDependencyError: A node was reached twice
            UnknownNodeTypeError: A node type has no handler
            NodeExecutionError: A handler failed
        """
        triggers = [n for n in nodes if n.type == NodeType.TRIGGER.value]
        if not triggers:
            raise MissingTriggerError()
        if len(triggers) > 1:
            raise WorkflowValidationError(
                f"Workflow must have exactly one trigger node, found {len(triggers)}",
                field="nodes"
            )

        nodes_by_id = {node.id: node for node in nodes}
        context = dict(variables)
        visited = set()
        current = triggers[0]

        while current is not None:
            if current.id in visited:
                raise CircularDependencyError(current.id)
            visited.add(current.id)

            logger.info(f"Executing node {current.id} ({current.type}) [{execution_id}]")
            start = time.perf_counter()

            try:
                result = await self.handlers.execute(current, context)
            except Exception as e:
                await self.execution_logger.log_node_execution(
                    execution_id, current.id, ExecutionStatus.FAILED, None, str(e), _elapsed_ms(start)
                )
                if isinstance(e, (UnknownNodeTypeError, NodeExecutionError)):
                    raise
                raise NodeExecutionError(current.id, str(e)) from e

            await self.execution_logger.log_node_execution(
                execution_id, current.id, ExecutionStatus.COMPLETED, result, None, _elapsed_ms(start)
            )

            # Last write wins on key conflicts
            context = {**context, **result}

            next_edge = find_next_edge(edges, current.id, result, context)
            if next_edge is None:
                break

            current = nodes_by_id.get(next_edge.target)
            if current is None:
                raise WorkflowValidationError(
                    f"Edge references non-existent node: {next_edge.target}",
                    field="edges"
                )

        return context


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
