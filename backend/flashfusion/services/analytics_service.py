# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Analytics Service

Summarizes execution history: per-node latency and failure statistics,
bottlenecks, a naive next-run prediction and an overall health score.
"""

import math
from collections import Counter, defaultdict
from statistics import mean
from typing import Any, Dict, List

from flashfusion.core.logging import get_service_logger
from flashfusion.store import EntityStore, utc_now_iso

logger = get_service_logger("analytics")

# (minimum score, status) - first match wins
HEALTH_BUCKETS = [
    (95, "excellent"),
    (80, "good"),
    (60, "fair"),
    (40, "poor"),
    (0, "critical"),
]


def percentile(values: List[float], pct: float) -> float:
    """Nearest-rank percentile"""
    if not values:
        return 0.0
    ordered = sorted(values)
    rank = max(1, math.ceil(pct / 100 * len(ordered)))
    return ordered[rank - 1]


def health_status(score: float) -> str:
    for threshold, status in HEALTH_BUCKETS:
        if score >= threshold:
            return status
    return "critical"


class WorkflowAnalyticsService:
    """
    Execution log analysis for a workflow.

    Only the most recent ``max_executions`` runs are considered.
    """

    def __init__(self, executions: EntityStore, max_executions: int = 50):
        self.executions = executions
        self.max_executions = max_executions

    async def analyze_executions(self, workflow_id: str) -> Dict[str, Any]:
        records = await self.executions.filter(workflow_id=workflow_id)
        records.sort(key=lambda r: r.get("started_at") or "", reverse=True)
        records = [r for r in records[:self.max_executions] if r.get("status") != "running"]

        if not records:
            return {
                "status": "no_data",
                "workflow_id": workflow_id,
                "message": "No execution history available",
            }

        analysis = self._analyze(records)
        logger.info(
            f"Analyzed {len(records)} executions of {workflow_id}: "
            f"score={analysis['overall_score']} ({analysis['health_status']})"
        )

        return {
            "status": "success",
            "workflow_id": workflow_id,
            "executions_analyzed": len(records),
            "analysis": analysis,
            "analyzed_at": utc_now_iso(),
        }

    def _analyze(self, records: List[Dict[str, Any]]) -> Dict[str, Any]:
        durations: Dict[str, List[int]] = defaultdict(list)
        failures: Counter = Counter()
        errors: Dict[str, Counter] = defaultdict(Counter)

        for record in records:
            for entry in record.get("execution_log") or []:
                node_id = entry.get("node_id")
                durations[node_id].append(entry.get("duration_ms") or 0)
                if entry.get("status") == "failed":
                    failures[node_id] += 1
                    if entry.get("error"):
                        errors[node_id][entry["error"]] += 1

        nodes = []
        for node_id, values in durations.items():
            runs = len(values)
            nodes.append({
                "node_id": node_id,
                "runs": runs,
                "avg_duration_ms": round(mean(values), 2),
                "percentile_95_ms": percentile(values, 95),
                "failure_rate": round(failures[node_id] / runs, 4),
                "common_errors": [error for error, _ in errors[node_id].most_common(3)],
            })

        total_avg = sum(node["avg_duration_ms"] for node in nodes) or 1
        bottlenecks = []
        for node in sorted(nodes, key=lambda n: n["avg_duration_ms"], reverse=True)[:3]:
            share = node["avg_duration_ms"] / total_avg
            bottlenecks.append({
                "node_id": node["node_id"],
                "avg_duration_ms": node["avg_duration_ms"],
                "percentile_95_ms": node["percentile_95_ms"],
                "impact": "high" if share >= 0.5 else "medium" if share >= 0.2 else "low",
            })

        failure_patterns = [
            {
                "node_id": node["node_id"],
                "failure_rate": node["failure_rate"],
                "common_errors": node["common_errors"],
            }
            for node in nodes if node["failure_rate"] > 0
        ]
        failure_patterns.sort(key=lambda p: p["failure_rate"], reverse=True)

        total = len(records)
        succeeded = sum(1 for r in records if r.get("status") == "completed")
        success_rate = succeeded / total
        completed_durations = [
            r["duration_ms"] for r in records
            if r.get("status") == "completed" and r.get("duration_ms") is not None
        ]
        score = round(success_rate * 100)

        return {
            "nodes": nodes,
            "bottlenecks": bottlenecks,
            "failure_patterns": failure_patterns,
            "predictions": {
                "next_execution_duration_ms": round(mean(completed_durations)) if completed_durations else None,
                "failure_probability": round(1 - success_rate, 4),
                "confidence": "high" if total >= 20 else "medium" if total >= 5 else "low",
            },
            "success_rate": round(success_rate, 4),
            "overall_score": score,
            "health_status": health_status(score),
        }
