# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution Logger

Appends one LogEntry per node run to the persisted execution record.
A failed write is reported but never aborts the run.
"""

import logging
from typing import Any, Optional

from flashfusion.store import EntityStore, utc_now_iso
from .models import ExecutionStatus, LogEntry

logger = logging.getLogger(__name__)


class ExecutionLogger:
    def __init__(self, executions: EntityStore):
        self.executions = executions

    async def log_node_execution(
        self,
        execution_id: str,
        node_id: str,
        status: ExecutionStatus,
        output: Optional[Any],
        error: Optional[str],
        duration_ms: int
    ) -> LogEntry:
        """
        Append a log entry and move ``current_node`` to ``node_id``.

        Returns:
            The entry that was appended
        """
        entry = LogEntry(
            node_id=node_id,
            timestamp=utc_now_iso(),
            status=status,
            output=output,
            error=error,
            duration_ms=duration_ms,
        )

        def append(record):
            record["execution_log"] = [
                *(record.get("execution_log") or []),
                entry.model_dump(mode="json"),
            ]
            record["current_node"] = node_id
            return record

        try:
            await self.executions.mutate(execution_id, append)
        except Exception:
            logger.exception(f"Failed to log node execution {execution_id}/{node_id}")

        return entry
