# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Validation

Structural checks run before a workflow document is stored.
Cycles are allowed here; the executor rejects revisits at run time.
"""

from typing import List

from .models import Workflow, NodeType
from .exceptions import WorkflowValidationError


def validate_workflow(workflow: Workflow) -> None:
    """
    Validate workflow structure.

    Raises WorkflowValidationError if validation fails.
    """
    # 1. Empty workflow check
    if len(workflow.nodes) == 0:
        raise WorkflowValidationError("Workflow must have at least one node", field="nodes")

    # 2. Duplicate node IDs
    node_ids = [node.id for node in workflow.nodes]
    if len(node_ids) != len(set(node_ids)):
        duplicates = sorted({nid for nid in node_ids if node_ids.count(nid) > 1})
        raise WorkflowValidationError(f"Duplicate node IDs found: {duplicates}", field="nodes")

    # 3. Invalid edge references
    node_id_set = set(node_ids)
    for edge in workflow.edges:
        if edge.source not in node_id_set:
            raise WorkflowValidationError(
                f"Edge references non-existent node: {edge.source}",
                field="edges"
            )
        if edge.target not in node_id_set:
            raise WorkflowValidationError(
                f"Edge references non-existent node: {edge.target}",
                field="edges"
            )

    # 4. Exactly one trigger
    triggers = find_trigger_nodes(workflow)
    if not triggers:
        raise WorkflowValidationError("Workflow must have a trigger node", field="nodes")
    if len(triggers) > 1:
        raise WorkflowValidationError(
            f"Workflow must have exactly one trigger node, found {len(triggers)}: {triggers}",
            field="nodes"
        )


def find_trigger_nodes(workflow: Workflow) -> List[str]:
    return [node.id for node in workflow.nodes if node.type == NodeType.TRIGGER.value]
