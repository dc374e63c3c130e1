# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Exceptions

Custom exceptions for the workflow execution engine.
"""

from typing import Optional

from flashfusion.core.errors import ExecutionError, NotFoundError, ValidationError, ForbiddenError


class WorkflowEngineError(ExecutionError):
    """Base exception for failures during a workflow run"""
    pass


class WorkflowNotFoundError(NotFoundError):
    def __init__(self, workflow_id: str):
        super().__init__("Workflow", workflow_id)
        self.workflow_id = workflow_id


class ExecutionNotFoundError(NotFoundError):
    def __init__(self, execution_id: str):
        super().__init__("WorkflowExecution", execution_id)
        self.execution_id = execution_id


class WorkflowValidationError(ValidationError):
    """
    Workflow structure is invalid.

    Raised at save time, or by the walker mid-run, in which case the
    execution service sets ``execution_id`` to the failed run.
    """
    execution_id: Optional[str] = None


class MissingTriggerError(WorkflowEngineError):
    """Workflow graph has no trigger node"""
    def __init__(self, workflow_id: Optional[str] = None):
        super().__init__("No trigger node found", details={"workflow_id": workflow_id})


class CircularDependencyError(WorkflowEngineError):
    """A node was reached a second time within one run"""
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(
            f"Circular dependency detected at node {node_id}",
            details={"node_id": node_id}
        )


class UnknownNodeTypeError(WorkflowEngineError):
    def __init__(self, node_type: str, node_id: Optional[str] = None):
        self.node_type = node_type
        self.node_id = node_id
        super().__init__(
            f"Unknown node type: {node_type}",
            details={"node_type": node_type, "node_id": node_id}
        )


class NodeExecutionError(WorkflowEngineError):
    """Node handler failed (network, LLM or expression failure)"""
    def __init__(self, node_id: str, message: str):
        self.node_id = node_id
        super().__init__(f"Node '{node_id}' failed: {message}", details={"node_id": node_id})


class ExpressionEvaluationError(WorkflowEngineError):
    """Expression could not be parsed or evaluated"""
    def __init__(self, expression: str, message: str):
        self.expression = expression
        super().__init__(
            f"Failed to evaluate expression '{expression}': {message}",
            details={"expression": expression}
        )


class InterpolationError(WorkflowEngineError):
    """Template placeholder has no value in the context (strict mode only)"""
    def __init__(self, placeholders):
        self.placeholders = list(placeholders)
        super().__init__(
            f"Unresolved template variables: {', '.join(self.placeholders)}",
            details={"placeholders": self.placeholders}
        )


class EgressDeniedError(ForbiddenError):
    """Outbound request blocked by the egress policy"""
    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Outbound request to '{url}' denied: {reason}", resource=url)
