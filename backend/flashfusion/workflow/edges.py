# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Edge Resolver

Picks the single next edge after a node has run.
"""

import logging
from typing import Any, Dict, List, Optional

from .models import WorkflowEdge

logger = logging.getLogger(__name__)

TRUE_HANDLE = "true"
FALSE_HANDLE = "false"


def find_next_edge(
    edges: List[WorkflowEdge],
    current_node_id: str,
    node_result: Optional[Dict[str, Any]],
    context: Dict[str, Any]
) -> Optional[WorkflowEdge]:
    """
    Resolve the outgoing edge to follow from ``current_node_id``.

    - No outgoing edges: None, the walk ends successfully.
    - One outgoing edge: that edge, its handle is not inspected.
    - Several: the edge whose ``sourceHandle`` matches the boolean
      ``condition_result`` of the node. When none matches, the first
      outgoing edge in document order is returned and a warning logged.

    ``context`` is accepted for resolvers that branch on accumulated state;
    handle matching only looks at the node result.
    """
    outgoing = [edge for edge in edges if edge.source == current_node_id]

    if not outgoing:
        return None
    if len(outgoing) == 1:
        return outgoing[0]

    condition_result = (node_result or {}).get("condition_result")

    for edge in outgoing:
        if edge.source_handle == TRUE_HANDLE and condition_result is True:
            return edge
        if edge.source_handle == FALSE_HANDLE and condition_result is False:
            return edge

    fallback = outgoing[0]
    logger.warning(
        f"No branch handle matched for node {current_node_id} "
        f"(condition_result={condition_result!r}); falling back to edge -> {fallback.target}"
    )
    return fallback
