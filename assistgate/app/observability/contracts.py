from __future__ import annotations

from dataclasses import dataclass

OUTCOME_ANSWERED = "answered"
OUTCOME_FALLBACK = "fallback"
OUTCOME_OUT_OF_SCOPE = "out_of_scope"
OUTCOME_ERROR = "error"


@dataclass(frozen=True)
class StepTrace:
    step_name: str
    latency_ms: int
    status: str
    error_message: str | None = None


@dataclass(frozen=True)
class ChatTrace:
    trace_id: str
    outcome: str
    scope_stage: str | None
    latency_ms: int
    matched_phrase: str | None = None
