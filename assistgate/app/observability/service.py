from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict
from uuid import uuid4

from assistgate.app.observability.contracts import ChatTrace, StepTrace


def _elapsed_ms(started_at: float) -> int:
    return max(int((time.perf_counter() - started_at) * 1000), 0)


def create_trace(
    outcome: str,
    scope_stage: str | None,
    started_at: float,
    matched_phrase: str | None = None,
) -> ChatTrace:
    return ChatTrace(
        trace_id=f"trace-{uuid4().hex[:10]}",
        outcome=outcome,
        scope_stage=scope_stage,
        latency_ms=_elapsed_ms(started_at),
        matched_phrase=matched_phrase,
    )


def step_trace(
    step_name: str,
    started_at: float,
    *,
    status: str = "ok",
    error_message: str | None = None,
) -> StepTrace:
    return StepTrace(
        step_name=step_name,
        latency_ms=_elapsed_ms(started_at),
        status=status,
        error_message=error_message,
    )


def emit_chat_telemetry(
    trace: ChatTrace,
    steps: list[StepTrace],
    logger: logging.Logger | None = None,
) -> None:
    active_logger = logger or logging.getLogger(__name__)
    for step in steps:
        payload = {"trace_id": trace.trace_id, "event": "step", **asdict(step)}
        active_logger.info("chat_event %s", json.dumps(payload, sort_keys=True))
    payload = {"event": "request", **asdict(trace)}
    active_logger.info("chat_event %s", json.dumps(payload, sort_keys=True))
