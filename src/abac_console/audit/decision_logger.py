"""Decision logging for policy evaluation.

Writes one DecisionLogEntry per evaluation to
<log_dir>/abac_console_logs/audit/decisions.jsonl.

Decision logs are ALWAYS enabled (not controlled by log_level) and are
append-only: entries are never rewritten.
"""

from __future__ import annotations

__all__ = [
    "DecisionLogger",
    "create_decision_logger",
]

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from abac_console.audit.models import AppliedPolicy, DecisionLogEntry
from abac_console.pdp.engine import EvaluationRequest, EvaluationResult
from abac_console.utils.logging import setup_jsonl_logger


class DecisionLogger:
    """Records evaluation outcomes as decision log entries.

    Usage:
        decision_logger = create_decision_logger(get_decisions_log_path(config))
        result = engine.evaluate(request)
        decision_logger.log_decision(request, result, endpoint="/orders", method="GET")
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def log_decision(
        self,
        request: EvaluationRequest,
        result: EvaluationResult,
        *,
        ip_address: str | None = None,
        endpoint: str | None = None,
        method: str | None = None,
    ) -> DecisionLogEntry:
        """Build and write the entry for one evaluation.

        Request context falls back to the environment axis (ip_address,
        endpoint, method) when not passed explicitly.

        Returns:
            The entry that was written.
        """
        env = request.environment
        entry = DecisionLogEntry(
            decision_id=str(uuid.uuid4()),
            user_id=str(request.subject.get("id", "unknown")),
            user_role=str(request.subject.get("role", "unknown")),
            action=str(request.action.get("action", "unknown")),
            resource_type=str(request.resource.get("resource_type", "unknown")),
            resource_id=_optional_str(request.resource.get("id")),
            decision=result.decision,
            applied_policies=tuple(
                AppliedPolicy(
                    policy_id=trace.policy_id,
                    policy_name=trace.policy_name,
                    effect=trace.effect,
                    matched=trace.matched,
                    reason=trace.reason,
                )
                for trace in result.applied_policies
            ),
            evaluation_time=result.evaluation_time_ms,
            ip_address=ip_address or _optional_str(env.get("ip_address")),
            endpoint=endpoint or _optional_str(env.get("endpoint")),
            method=method or _optional_str(env.get("method") or request.action.get("method")),
            created_at=datetime.now(timezone.utc),
        )
        self._logger.info(entry.to_wire())
        return entry


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)


def create_decision_logger(log_path: Path) -> DecisionLogger:
    """Create a decision logger writing to log_path.

    Args:
        log_path: Path to decisions.jsonl.

    Returns:
        DecisionLogger bound to a JSONL file logger.
    """
    logger = setup_jsonl_logger(
        f"abac-console.audit.decisions.{log_path.resolve()}",
        log_path,
        log_level=logging.INFO,
    )
    return DecisionLogger(logger)
