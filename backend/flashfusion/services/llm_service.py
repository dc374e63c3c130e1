# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
LLM Service - invokes the hosted model for ai_task nodes.

Wraps the Anthropic Messages API. When a JSON schema is supplied the
model is asked for JSON only and the reply is parsed; otherwise the raw
text is returned. Responses can be cached for a short TTL by cache key.
"""

import json
import re
import time
from typing import Any, Dict, Optional, Tuple

from flashfusion.core.errors import ExecutionError
from flashfusion.core.logging import get_service_logger

logger = get_service_logger("llm")

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class LLMResponseError(ExecutionError):
    """Model reply could not be used"""
    pass


class LLMService:
    """
    LLM collaborator for the workflow engine.

    Responsibilities:
    - Call the model with a prompt, optional model override and output schema
    - Parse structured (JSON) replies
    - Cache replies by caller-supplied key
    """

    def __init__(
        self,
        client,
        default_model: str,
        max_tokens: int = 4096,
        cache_ttl_seconds: float = 300.0
    ):
        """
        Initialize LLMService.

        Args:
            client: anthropic.AsyncAnthropic (or compatible) client
            default_model: Model used when a node does not name one
            max_tokens: Max tokens per reply
            cache_ttl_seconds: Lifetime of cached replies (0 disables caching)
        """
        self.client = client
        self.default_model = default_model
        self.max_tokens = max_tokens
        self.cache_ttl_seconds = cache_ttl_seconds
        self._cache: Dict[str, Tuple[float, Any]] = {}

    async def invoke_llm(
        self,
        prompt: str,
        model: Optional[str] = None,
        schema: Optional[Dict[str, Any]] = None,
        cache_key: Optional[str] = None
    ) -> Any:
        """
        Invoke the model.

        Args:
            prompt: User prompt
            model: Model name override
            schema: JSON schema the reply must follow
            cache_key: Cache replies under this key

        Returns:
            Parsed JSON when ``schema`` is given, else the reply text

        Raises:
            LLMResponseError: If the reply is empty or not valid JSON
        """
        if cache_key:
            cached = self._cache.get(cache_key)
            if cached and time.monotonic() - cached[0] < self.cache_ttl_seconds:
                logger.debug(f"LLM cache hit: {cache_key}")
                return cached[1]

        request: Dict[str, Any] = {
            "model": model or self.default_model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if schema:
            request["system"] = (
                "Respond with a single JSON value that validates against this JSON schema "
                "and nothing else:\n" + json.dumps(schema)
            )

        logger.info(f"Invoking LLM model={request['model']} structured={bool(schema)}")
        response = await self.client.messages.create(**request)

        text = "".join(
            getattr(block, "text", "") for block in response.content
            if getattr(block, "type", None) == "text"
        ).strip()
        if not text:
            raise LLMResponseError("LLM returned an empty response")

        result = self._parse_json(text) if schema else text

        if cache_key and self.cache_ttl_seconds > 0:
            self._cache[cache_key] = (time.monotonic(), result)

        return result

    def clear_cache(self) -> None:
        self._cache.clear()

    @staticmethod
    def _parse_json(text: str) -> Any:
        match = _FENCE_PATTERN.match(text)
        if match:
            text = match.group(1)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise LLMResponseError(f"LLM response is not valid JSON: {e.msg}")
