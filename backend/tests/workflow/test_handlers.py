# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for node handlers
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

from flashfusion.services.egress import EgressPolicy
from flashfusion.services.llm_service import LLMService
from flashfusion.workflow.exceptions import (
    EgressDeniedError,
    ExpressionEvaluationError,
    InterpolationError,
    UnknownNodeTypeError,
)
from flashfusion.workflow.handlers import NodeHandlers
from flashfusion.workflow.models import WorkflowNode
from tests.conftest import json_transport, node


def make_node(node_id, node_type, **config):
    return WorkflowNode.model_validate(node(node_id, node_type, **config))


# ============================================================================
# Dispatch
# ============================================================================

def test_node_types(handlers):
    assert handlers.node_types == ["ai_task", "api_call", "condition", "end", "transform", "trigger"]


@pytest.mark.asyncio
async def test_unknown_node_type(handlers):
    with pytest.raises(UnknownNodeTypeError, match="Unknown node type: webhook"):
        await handlers.execute(make_node("w", "webhook"), {})


@pytest.mark.asyncio
async def test_trigger_and_end_contribute_nothing(handlers):
    context = {"a": 1}
    assert await handlers.execute(make_node("t", "trigger"), context) == {}
    assert await handlers.execute(make_node("e", "end"), context) == {}
    assert context == {"a": 1}


# ============================================================================
# ai_task
# ============================================================================

@pytest.mark.asyncio
async def test_ai_task_interpolates_prompt(handlers, mock_llm):
    task = make_node(
        "ai", "ai_task",
        prompt="Summarize {{text}}", model="claude-x",
        outputSchema={"type": "object"}, outputVariable="summary"
    )

    result = await handlers.execute(task, {"text": "hello"})

    assert result == {"summary": {"summary": "stubbed"}}
    mock_llm.invoke_llm.assert_awaited_once_with(
        prompt="Summarize hello", model="claude-x", schema={"type": "object"}, cache_key=None
    )


@pytest.mark.asyncio
async def test_ai_task_default_output_variable(handlers, mock_llm):
    mock_llm.invoke_llm.return_value = "plain text"
    result = await handlers.execute(make_node("ai", "ai_task", prompt="Hi"), {})
    assert result == {"ai_result": "plain text"}


@pytest.mark.asyncio
async def test_ai_task_strict_interpolation(mock_llm, http_client):
    strict = NodeHandlers(mock_llm, http_client, strict_interpolation=True)
    with pytest.raises(InterpolationError):
        await strict.execute(make_node("ai", "ai_task", prompt="Hi {{who}}"), {})
    mock_llm.invoke_llm.assert_not_awaited()


@pytest.mark.asyncio
async def test_ai_task_cache_key_reuses_reply(http_client):
    response = SimpleNamespace(content=[SimpleNamespace(type="text", text="cached plan")])
    client = SimpleNamespace(messages=SimpleNamespace(create=AsyncMock(return_value=response)))
    handlers = NodeHandlers(LLMService(client, "claude-default"), http_client)
    task = make_node("ai", "ai_task", prompt="Plan for {{city}}", cacheKey="plan-{{city}}")

    first = await handlers.execute(task, {"city": "Oslo"})
    second = await handlers.execute(task, {"city": "Oslo"})
    other = await handlers.execute(task, {"city": "Rome"})

    assert first == second == other == {"ai_result": "cached plan"}
    assert client.messages.create.await_count == 2


# ============================================================================
# api_call
# ============================================================================

@pytest.mark.asyncio
async def test_api_call_get(handlers, http_calls):
    call = make_node(
        "api", "api_call",
        endpoint="https://api.example.com/users/{{user_id}}",
        headers={"Authorization": "Bearer t"},
        outputVariable="user"
    )

    result = await handlers.execute(call, {"user_id": 42})

    assert result == {"user": {"ok": True}, "api_status": 200}
    assert len(http_calls) == 1
    request = http_calls[0]
    assert request.method == "GET"
    assert str(request.url) == "https://api.example.com/users/42"
    assert request.headers["Authorization"] == "Bearer t"
    assert request.headers["Content-Type"] == "application/json"
    assert request.content == b""


@pytest.mark.asyncio
async def test_api_call_post_interpolates_body(handlers, http_calls):
    call = make_node(
        "api", "api_call",
        endpoint="https://api.example.com/items", method="post",
        body={"name": "{{name}}"}
    )

    result = await handlers.execute(call, {"name": "widget"})

    assert result["api_result"] == {"ok": True}
    assert http_calls[0].method == "POST"
    assert json.loads(http_calls[0].content) == {"name": "widget"}


@pytest.mark.asyncio
async def test_api_call_error_status_is_data(mock_llm):
    client = httpx.AsyncClient(transport=json_transport({"error": "nope"}, status_code=503))
    handlers = NodeHandlers(mock_llm, client)

    result = await handlers.execute(make_node("api", "api_call", endpoint="https://x.test/"), {})

    assert result == {"api_result": {"error": "nope"}, "api_status": 503}


@pytest.mark.asyncio
async def test_api_call_empty_body(mock_llm):
    client = httpx.AsyncClient(transport=json_transport(None, status_code=204))
    handlers = NodeHandlers(mock_llm, client)

    result = await handlers.execute(make_node("api", "api_call", endpoint="https://x.test/"), {})

    assert result == {"api_result": None, "api_status": 204}


@pytest.mark.asyncio
async def test_api_call_non_json_body_fails(mock_llm):
    client = httpx.AsyncClient(transport=httpx.MockTransport(
        lambda request: httpx.Response(200, text="<html>")
    ))
    handlers = NodeHandlers(mock_llm, client)

    with pytest.raises(ValueError):
        await handlers.execute(make_node("api", "api_call", endpoint="https://x.test/"), {})


@pytest.mark.asyncio
async def test_api_call_egress_denied(mock_llm, http_client, http_calls):
    handlers = NodeHandlers(mock_llm, http_client, egress_policy=EgressPolicy(["api.example.com"]))

    with pytest.raises(EgressDeniedError):
        await handlers.execute(make_node("api", "api_call", endpoint="https://evil.test/"), {})
    with pytest.raises(EgressDeniedError):
        await handlers.execute(make_node("api", "api_call", endpoint="file:///etc/passwd"), {})

    assert http_calls == []


# ============================================================================
# condition
# ============================================================================

@pytest.mark.asyncio
async def test_condition(handlers):
    cond = make_node("c", "condition", expression="score >= 50 && passed")
    assert await handlers.execute(cond, {"score": 70, "passed": True}) == {"condition_result": True}
    assert await handlers.execute(cond, {"score": 10, "passed": True}) == {"condition_result": False}


@pytest.mark.asyncio
async def test_condition_result_is_boolean(handlers):
    result = await handlers.execute(make_node("c", "condition", expression="items"), {"items": [1]})
    assert result["condition_result"] is True


@pytest.mark.asyncio
async def test_condition_error_strict(handlers):
    with pytest.raises(ExpressionEvaluationError):
        await handlers.execute(make_node("c", "condition", expression="missing > 1"), {})


@pytest.mark.asyncio
async def test_condition_error_lenient(mock_llm, http_client):
    lenient = NodeHandlers(mock_llm, http_client, strict_expressions=False)
    result = await lenient.execute(make_node("c", "condition", expression="missing > 1"), {})
    assert result == {"condition_result": False}


# ============================================================================
# transform
# ============================================================================

@pytest.mark.asyncio
async def test_transform_map(handlers):
    transform = make_node(
        "m", "transform",
        operation="map", inputVariable="prices", expression="item * factor", outputVariable="scaled"
    )
    context = {"prices": [1, 2, 3], "factor": 10}

    assert await handlers.execute(transform, context) == {"scaled": [10, 20, 30]}
    assert "item" not in context


@pytest.mark.asyncio
async def test_transform_map_defaults(handlers):
    transform = make_node("m", "transform", operation="map", inputVariable="xs")
    assert await handlers.execute(transform, {"xs": [1, "a"]}) == {"transformed": [1, "a"]}


@pytest.mark.asyncio
async def test_transform_filter(handlers):
    transform = make_node(
        "f", "transform",
        operation="filter", inputVariable="users", expression="item.active === true"
    )
    users = [{"name": "a", "active": True}, {"name": "b", "active": False}]

    result = await handlers.execute(transform, {"users": users})

    assert result == {"filtered": [{"name": "a", "active": True}]}


@pytest.mark.asyncio
async def test_transform_filter_lenient_drops_failing_items(mock_llm, http_client):
    lenient = NodeHandlers(mock_llm, http_client, strict_expressions=False)
    transform = make_node(
        "f", "transform", operation="filter", inputVariable="xs", expression="item.size > 1"
    )

    result = await lenient.execute(transform, {"xs": [{"size": 2}, None, {"size": 0}]})

    assert result == {"filtered": [{"size": 2}]}


@pytest.mark.asyncio
async def test_transform_requires_list(handlers):
    transform = make_node("m", "transform", operation="map", inputVariable="xs")
    with pytest.raises(TypeError, match="map requires a list in 'xs', got dict"):
        await handlers.execute(transform, {"xs": {"a": 1}})
    with pytest.raises(TypeError, match="got NoneType"):
        await handlers.execute(transform, {})


@pytest.mark.asyncio
async def test_transform_merge(handlers):
    transform = make_node(
        "g", "transform", operation="merge", sources=["a", "missing", "b"], outputVariable="all"
    )

    result = await handlers.execute(transform, {"a": {"x": 1, "y": 1}, "b": {"y": 2}})

    assert result == {"all": {"x": 1, "y": 2}}


@pytest.mark.asyncio
async def test_transform_merge_rejects_non_mapping(handlers):
    transform = make_node("g", "transform", operation="merge", sources=["a"])
    with pytest.raises(TypeError, match="must be an object"):
        await handlers.execute(transform, {"a": [1, 2]})


@pytest.mark.asyncio
async def test_transform_unknown_operation_passes_through(handlers):
    transform = make_node("p", "transform", operation="reduce")
    assert await handlers.execute(transform, {"a": 1}) == {}
