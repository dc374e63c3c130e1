# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for execution analytics
"""

import pytest

from flashfusion.services.analytics_service import (
    WorkflowAnalyticsService,
    health_status,
    percentile,
)


def log_entry(node_id, duration_ms, status="completed", error=None):
    return {
        "node_id": node_id,
        "timestamp": "2025-01-01T00:00:00+00:00",
        "status": status,
        "output": None,
        "error": error,
        "duration_ms": duration_ms,
    }


async def seed(store, execution_id, started_at, status, log, duration_ms=None, workflow_id="wf_test"):
    await store.create({
        "id": execution_id,
        "workflow_id": workflow_id,
        "status": status,
        "started_at": started_at,
        "duration_ms": duration_ms,
        "execution_log": log,
    })


def test_percentile_nearest_rank():
    assert percentile([], 95) == 0.0
    assert percentile([5], 95) == 5
    assert percentile(list(range(1, 101)), 95) == 95
    assert percentile([10, 30, 20], 50) == 20


@pytest.mark.parametrize("score,status", [
    (100, "excellent"), (95, "excellent"), (94, "good"), (80, "good"),
    (79, "fair"), (60, "fair"), (59, "poor"), (40, "poor"), (39, "critical"), (0, "critical"),
])
def test_health_status_buckets(score, status):
    assert health_status(score) == status


@pytest.mark.asyncio
async def test_no_data(execution_store):
    result = await WorkflowAnalyticsService(execution_store).analyze_executions("wf_test")
    assert result["status"] == "no_data"


@pytest.mark.asyncio
async def test_running_executions_ignored(execution_store):
    await seed(execution_store, "exec_1", "2025-01-01T00:00:00", "running", [log_entry("t", 1)])

    result = await WorkflowAnalyticsService(execution_store).analyze_executions("wf_test")

    assert result["status"] == "no_data"


@pytest.mark.asyncio
async def test_analysis(execution_store):
    await seed(execution_store, "exec_1", "2025-01-01T00:00:01", "completed",
               [log_entry("t", 0), log_entry("api", 100)], duration_ms=110)
    await seed(execution_store, "exec_2", "2025-01-01T00:00:02", "completed",
               [log_entry("t", 0), log_entry("api", 300)], duration_ms=310)
    await seed(execution_store, "exec_3", "2025-01-01T00:00:03", "failed",
               [log_entry("t", 0), log_entry("api", 50, "failed", "timeout")], duration_ms=60)
    await seed(execution_store, "exec_x", "2025-01-01T00:00:04", "completed",
               [log_entry("t", 999)], workflow_id="wf_other")

    result = await WorkflowAnalyticsService(execution_store).analyze_executions("wf_test")

    assert result["status"] == "success"
    assert result["executions_analyzed"] == 3
    analysis = result["analysis"]

    nodes = {n["node_id"]: n for n in analysis["nodes"]}
    assert nodes["api"]["runs"] == 3
    assert nodes["api"]["avg_duration_ms"] == 150.0
    assert nodes["api"]["percentile_95_ms"] == 300
    assert nodes["api"]["failure_rate"] == pytest.approx(0.3333)
    assert nodes["api"]["common_errors"] == ["timeout"]
    assert nodes["t"]["failure_rate"] == 0

    assert analysis["bottlenecks"][0]["node_id"] == "api"
    assert analysis["bottlenecks"][0]["impact"] == "high"
    assert [p["node_id"] for p in analysis["failure_patterns"]] == ["api"]

    assert analysis["success_rate"] == pytest.approx(0.6667)
    assert analysis["overall_score"] == 67
    assert analysis["health_status"] == "fair"
    assert analysis["predictions"]["next_execution_duration_ms"] == 210
    assert analysis["predictions"]["failure_probability"] == pytest.approx(0.3333)
    assert analysis["predictions"]["confidence"] == "low"


@pytest.mark.asyncio
async def test_only_recent_executions_considered(execution_store):
    await seed(execution_store, "exec_old", "2025-01-01T00:00:00", "failed", [log_entry("t", 1, "failed", "x")])
    await seed(execution_store, "exec_new", "2025-06-01T00:00:00", "completed", [log_entry("t", 1)])

    result = await WorkflowAnalyticsService(execution_store, max_executions=1).analyze_executions("wf_test")

    assert result["executions_analyzed"] == 1
    assert result["analysis"]["health_status"] == "excellent"
