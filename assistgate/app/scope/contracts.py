from __future__ import annotations

from dataclasses import dataclass

SCOPE_STAGE_STRONG_TERM = "strong_term"
SCOPE_STAGE_WEAK_WITH_ACTION = "weak_with_action"
SCOPE_STAGE_CONTEXT_FOLLOW_UP = "context_follow_up"
SCOPE_STAGE_CLASSIFIER = "classifier"
SCOPE_STAGE_CLASSIFIER_FAIL_OPEN = "classifier_fail_open"
SCOPE_STAGE_INCONCLUSIVE = "inconclusive"


@dataclass(frozen=True)
class ScopePolicy:
    strong_terms: tuple[str, ...]
    weak_terms: tuple[str, ...]
    action_terms: tuple[str, ...]
    domain_description: str
    refusal_message: str


@dataclass(frozen=True)
class ScopeEvidence:
    message: str
    context: str


@dataclass(frozen=True)
class ScopeDecision:
    in_scope: bool
    stage: str
    evidence: ScopeEvidence
    confirmed: bool = True
