# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Node Handlers

One coroutine per node type. Each takes the node and the current context
and returns the dict merged into the context by the executor; handlers
never mutate the context they are given.
"""

import json
import logging
from collections import ChainMap
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx

from flashfusion.services.egress import EgressPolicy
from .expressions import evaluate_condition, evaluate_expression
from .exceptions import ExpressionEvaluationError, UnknownNodeTypeError
from .interpolation import interpolate
from .models import NodeType, WorkflowNode

logger = logging.getLogger(__name__)

Handler = Callable[[WorkflowNode, Dict[str, Any]], Awaitable[Dict[str, Any]]]

DEFAULT_OUTPUT_VARIABLES = {
    NodeType.AI_TASK: "ai_result",
    NodeType.API_CALL: "api_result",
    "map": "transformed",
    "filter": "filtered",
    "merge": "merged",
}


class NodeHandlers:
    """
    Dispatch table for node execution.

    Collaborators:
        llm: object exposing ``async invoke_llm(prompt, model, schema)``
        http_client: httpx.AsyncClient used by api_call nodes
        egress_policy: EgressPolicy checked before every outbound request
    """

    def __init__(
        self,
        llm,
        http_client: httpx.AsyncClient,
        egress_policy: Optional[EgressPolicy] = None,
        strict_expressions: bool = True,
        strict_interpolation: bool = False
    ):
        self.llm = llm
        self.http_client = http_client
        self.egress_policy = egress_policy or EgressPolicy()
        self.strict_expressions = strict_expressions
        self.strict_interpolation = strict_interpolation

        self._handlers: Dict[str, Handler] = {
            NodeType.TRIGGER.value: self._execute_passthrough,
            NodeType.AI_TASK.value: self._execute_ai_task,
            NodeType.API_CALL.value: self._execute_api_call,
            NodeType.CONDITION.value: self._execute_condition,
            NodeType.TRANSFORM.value: self._execute_transform,
            NodeType.END.value: self._execute_passthrough,
        }

    @property
    def node_types(self):
        return sorted(self._handlers)

    async def execute(self, node: WorkflowNode, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Execute a single node - dispatches by node type.

        Raises:
            UnknownNodeTypeError: If no handler is registered for ``node.type``
        """
        handler = self._handlers.get(node.type)
        if handler is None:
            raise UnknownNodeTypeError(node.type, node.id)
        return await handler(node, context)

    # ========================================================================
    # Handlers
    # ========================================================================

    async def _execute_passthrough(self, node: WorkflowNode, context: Dict[str, Any]) -> Dict[str, Any]:
        """trigger / end: context flows through unchanged"""
        return {}

    async def _execute_ai_task(self, node: WorkflowNode, context: Dict[str, Any]) -> Dict[str, Any]:
        config = node.config
        prompt = self._interpolate(config.get("prompt") or "", context)

        # Replies are reused for nodes that name a cache key; it may reference context values
        cache_key = self._interpolate(config["cacheKey"], context) if config.get("cacheKey") else None

        result = await self.llm.invoke_llm(
            prompt=prompt,
            model=config.get("model"),
            schema=config.get("outputSchema"),
            cache_key=cache_key,
        )

        return {
            config.get("outputVariable") or DEFAULT_OUTPUT_VARIABLES[NodeType.AI_TASK]: result,
        }

    async def _execute_api_call(self, node: WorkflowNode, context: Dict[str, Any]) -> Dict[str, Any]:
        config = node.config

        url = self._interpolate(config.get("endpoint") or "", context)
        method = (config.get("method") or "GET").upper()
        headers = {
            "Content-Type": "application/json",
            **(config.get("headers") or {}),
        }

        content = None
        body = config.get("body")
        if body and method != "GET":
            raw_body = body if isinstance(body, str) else json.dumps(body)
            content = self._interpolate(raw_body, context)

        self.egress_policy.check(url)

        logger.info(f"api_call {node.id}: {method} {url}")
        response = await self.http_client.request(method, url, headers=headers, content=content)

        # Non-2xx responses are data, not failures; the status is exposed
        data = response.json() if response.content else None

        return {
            config.get("outputVariable") or DEFAULT_OUTPUT_VARIABLES[NodeType.API_CALL]: data,
            "api_status": response.status_code,
        }

    async def _execute_condition(self, node: WorkflowNode, context: Dict[str, Any]) -> Dict[str, Any]:
        expression = node.config.get("expression") or ""

        return {
            "condition_result": self._evaluate(expression, context, evaluate=evaluate_condition),
        }

    async def _execute_transform(self, node: WorkflowNode, context: Dict[str, Any]) -> Dict[str, Any]:
        config = node.config
        operation = config.get("operation") or "passthrough"

        if operation == "map":
            return self._transform_map(config, context)
        elif operation == "filter":
            return self._transform_filter(config, context)
        elif operation == "merge":
            return self._transform_merge(config, context)

        logger.warning(f"Transform node {node.id} has no known operation ({operation!r}); passing through")
        return {}

    # ========================================================================
    # Transform operations
    # ========================================================================

    def _transform_map(self, config: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        data = self._input_list(config, context, "map")
        expression = config.get("expression") or "item"

        mapped = [
            self._evaluate(expression, ChainMap({"item": item}, context))
            for item in data
        ]

        return {
            config.get("outputVariable") or DEFAULT_OUTPUT_VARIABLES["map"]: mapped,
        }

    def _transform_filter(self, config: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        data = self._input_list(config, context, "filter")
        expression = config.get("expression") or "true"

        filtered = [
            item for item in data
            if self._evaluate(expression, ChainMap({"item": item}, context))
        ]

        return {
            config.get("outputVariable") or DEFAULT_OUTPUT_VARIABLES["filter"]: filtered,
        }

    def _transform_merge(self, config: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}

        for key in config.get("sources") or []:
            value = context.get(key)
            if value is None:
                continue
            if not isinstance(value, Mapping):
                raise TypeError(f"merge source '{key}' must be an object, got {type(value).__name__}")
            merged.update(value)

        return {
            config.get("outputVariable") or DEFAULT_OUTPUT_VARIABLES["merge"]: merged,
        }

    # ========================================================================
    # Helper Methods
    # ========================================================================

    @staticmethod
    def _input_list(config: Dict[str, Any], context: Dict[str, Any], operation: str) -> list:
        input_variable = config.get("inputVariable")
        data = context.get(input_variable) if input_variable else None
        if not isinstance(data, list):
            raise TypeError(
                f"{operation} requires a list in '{input_variable}', got {type(data).__name__}"
            )
        return data

    def _interpolate(self, template: str, context: Mapping[str, Any]) -> str:
        return interpolate(template, context, strict=self.strict_interpolation)

    def _evaluate(self, expression: str, variables: Mapping[str, Any], evaluate=evaluate_expression) -> Any:
        """
        Evaluate an expression under the configured error policy.

        Strict: errors propagate and fail the node.
        Lenient: errors are logged and the expression yields False.
        """
        try:
            return evaluate(expression, variables)
        except ExpressionEvaluationError as e:
            if self.strict_expressions:
                raise
            logger.warning(f"{e.message}; treating as false")
            return False
