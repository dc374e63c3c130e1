# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Models

Pydantic models for workflow definitions, executions and their log entries.
"""

from enum import Enum
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field, ConfigDict


class NodeType(str, Enum):
    """
    Supported workflow node types.

    TRIGGER - Entry point, exactly one per workflow
    AI_TASK - Invoke the LLM with an interpolated prompt
    API_CALL - Outbound HTTP request
    CONDITION - Boolean branch point (true/false edges)
    TRANSFORM - map / filter / merge over context values
    END - Explicit terminal node
    """
    TRIGGER = "trigger"
    AI_TASK = "ai_task"
    API_CALL = "api_call"
    CONDITION = "condition"
    TRANSFORM = "transform"
    END = "end"


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class NodeData(BaseModel):
    """Builder payload attached to a node; only ``config`` drives execution"""
    model_config = ConfigDict(extra="allow")

    label: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)


class WorkflowNode(BaseModel):
    """
    Single step in a workflow graph.

    ``type`` is kept as a plain string so stored documents with an
    unrecognized type still load and fail at dispatch time.
    """
    model_config = ConfigDict(extra="allow")

    id: str
    type: str
    data: NodeData = Field(default_factory=NodeData)
    position: Dict[str, float] = Field(default_factory=lambda: {"x": 0, "y": 0})

    @property
    def config(self) -> Dict[str, Any]:
        return self.data.config


class WorkflowEdge(BaseModel):
    """Directed connection; ``sourceHandle`` selects a condition branch"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = None
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")


class Workflow(BaseModel):
    """Workflow document - replaced as a whole, never patched"""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    version: int = 1
    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)
    variables: Dict[str, Any] = Field(default_factory=dict)

    # Aggregate statistics, maintained by the execution service
    execution_count: int = 0
    success_count: int = 0
    success_rate: float = 0.0
    last_executed: Optional[str] = None


class LogEntry(BaseModel):
    """One node run; appended to an execution and never modified"""
    model_config = ConfigDict(frozen=True)

    node_id: str
    timestamp: str
    status: ExecutionStatus
    output: Optional[Any] = None
    error: Optional[str] = None
    duration_ms: int


class WorkflowExecution(BaseModel):
    """One run of a workflow"""
    model_config = ConfigDict(extra="allow")

    id: str
    workflow_id: str
    status: ExecutionStatus = ExecutionStatus.RUNNING
    input_data: Dict[str, Any] = Field(default_factory=dict)
    variables: Dict[str, Any] = Field(default_factory=dict)
    execution_log: List[LogEntry] = Field(default_factory=list)
    current_node: Optional[str] = None
    started_at: str
    completed_at: Optional[str] = None
    duration_ms: Optional[int] = None
    output_data: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None


class ExecutionResult(BaseModel):
    """Returned by WorkflowExecutionService.execute_workflow"""
    success: bool
    execution_id: str
    result: Dict[str, Any]


class ExecuteWorkflowRequest(BaseModel):
    """Request body for POST /workflows/{id}/execute"""
    input_data: Dict[str, Any] = Field(default_factory=dict)


class NodeConfigChanges(BaseModel):
    """Request body for PATCH /workflows/{id}/nodes/{node_id}/config"""
    changes: Dict[str, Any]
