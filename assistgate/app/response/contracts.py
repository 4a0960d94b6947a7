from __future__ import annotations

from dataclasses import dataclass

ANSWER_POLICY_ANSWERED = "answered"
ANSWER_POLICY_FALLBACK = "fallback"


@dataclass(frozen=True)
class ResponsePolicy:
    uncertainty_phrases: tuple[str, ...]
    fallback_message: str
    assistant_instructions: str | None = None


@dataclass(frozen=True)
class ResolvedAnswer:
    text: str
    policy: str
    matched_phrase: str | None = None
