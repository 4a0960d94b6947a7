from __future__ import annotations

import logging
import re

from assistgate.app.assistant.contracts import AssistantProvider, Turn
from assistgate.app.llm.providers import ScopeClassifierModel
from assistgate.app.response.service import turn_text
from assistgate.app.sanitize.service import fold_for_matching, sanitize_text
from assistgate.app.scope.contracts import (
    SCOPE_STAGE_CLASSIFIER,
    SCOPE_STAGE_CLASSIFIER_FAIL_OPEN,
    SCOPE_STAGE_CONTEXT_FOLLOW_UP,
    SCOPE_STAGE_INCONCLUSIVE,
    SCOPE_STAGE_STRONG_TERM,
    SCOPE_STAGE_WEAK_WITH_ACTION,
    ScopeDecision,
    ScopeEvidence,
    ScopePolicy,
)
from assistgate.core.errors import ClassificationTransportError

LOGGER = logging.getLogger(__name__)

DEFAULT_CONTEXT_TURNS = 6
CLASSIFIER_AFFIRMATIVE_TOKEN = "IN"
CLASSIFIER_NEGATIVE_TOKEN = "OUT"


def contains_any(text: str, terms: tuple[str, ...]) -> bool:
    return any(term in text for term in terms)


def normalize_message(message: str) -> str:
    return fold_for_matching(sanitize_text(message))


def flatten_context(turns: tuple[Turn, ...]) -> str:
    # Provider pages arrive newest first; the context reads oldest first.
    lines: list[str] = []
    for turn in reversed(turns):
        text = sanitize_text(turn_text(turn, separator=" "))
        if text:
            lines.append(f"{turn.role}: {text}")
    return "\n".join(lines)


def match_message_terms(normalized_message: str, policy: ScopePolicy) -> str | None:
    if contains_any(normalized_message, policy.strong_terms):
        return SCOPE_STAGE_STRONG_TERM
    if contains_any(normalized_message, policy.weak_terms) and contains_any(
        normalized_message, policy.action_terms
    ):
        return SCOPE_STAGE_WEAK_WITH_ACTION
    return None


def match_context_follow_up(
    normalized_message: str, context: str, policy: ScopePolicy
) -> bool:
    normalized_context = context.lower()
    context_in_domain = contains_any(
        normalized_context, policy.strong_terms
    ) or contains_any(normalized_context, policy.weak_terms)
    if not context_in_domain:
        return False
    return contains_any(normalized_message, policy.action_terms) or contains_any(
        normalized_message, policy.weak_terms
    )


def evaluate_heuristics(
    message: str, context: str, policy: ScopePolicy
) -> ScopeDecision:
    normalized = normalize_message(message)
    evidence = ScopeEvidence(message=message, context=context)
    stage = match_message_terms(normalized, policy)
    if stage is not None:
        return ScopeDecision(in_scope=True, stage=stage, evidence=evidence)
    if context and match_context_follow_up(normalized, context, policy):
        return ScopeDecision(
            in_scope=True, stage=SCOPE_STAGE_CONTEXT_FOLLOW_UP, evidence=evidence
        )
    return ScopeDecision(
        in_scope=False,
        stage=SCOPE_STAGE_INCONCLUSIVE,
        evidence=evidence,
        confirmed=False,
    )


def build_classifier_prompts(
    message: str, context: str, policy: ScopePolicy
) -> tuple[str, str]:
    system_prompt = (
        "Sei un classificatore binario. Decidi se il messaggio dell'utente "
        f"riguarda {policy.domain_description}. "
        "I messaggi di follow-up che proseguono una conversazione pertinente "
        "sono pertinenti. "
        f"Rispondi esclusivamente con {CLASSIFIER_AFFIRMATIVE_TOKEN} "
        f"oppure {CLASSIFIER_NEGATIVE_TOKEN}."
    )
    user_prompt = (
        f"Contesto recente:\n{context or '(nessuno)'}\n\n"
        f"Messaggio attuale:\n{message}"
    )
    return system_prompt, user_prompt


def parse_classifier_reply(reply: str) -> bool | None:
    tokens = re.findall(r"[a-z]+", reply.lower())
    if CLASSIFIER_AFFIRMATIVE_TOKEN.lower() in tokens:
        return True
    if CLASSIFIER_NEGATIVE_TOKEN.lower() in tokens:
        return False
    return None


async def load_recent_context(
    *, provider: AssistantProvider, thread_id: str, limit: int
) -> str:
    turns = await provider.list_recent_turns(thread_id, order="desc", limit=limit)
    return flatten_context(turns)


async def classify_with_model(
    *,
    message: str,
    context: str,
    policy: ScopePolicy,
    classifier: ScopeClassifierModel,
) -> ScopeDecision:
    evidence = ScopeEvidence(message=message, context=context)
    system_prompt, user_prompt = build_classifier_prompts(message, context, policy)
    try:
        reply = await classifier.classify(
            system_prompt=system_prompt, user_prompt=user_prompt
        )
    except ClassificationTransportError as exc:
        LOGGER.warning("scope classifier failed open: %s", exc)
        return ScopeDecision(
            in_scope=True,
            stage=SCOPE_STAGE_CLASSIFIER_FAIL_OPEN,
            evidence=evidence,
            confirmed=False,
        )

    verdict = parse_classifier_reply(reply)
    if verdict is None:
        LOGGER.warning("scope classifier reply unparseable, failing open: %r", reply)
        return ScopeDecision(
            in_scope=True,
            stage=SCOPE_STAGE_CLASSIFIER_FAIL_OPEN,
            evidence=evidence,
            confirmed=False,
        )
    return ScopeDecision(
        in_scope=verdict, stage=SCOPE_STAGE_CLASSIFIER, evidence=evidence
    )


async def classify_scope(
    *,
    message: str,
    thread_id: str,
    provider: AssistantProvider,
    classifier: ScopeClassifierModel,
    policy: ScopePolicy,
    context_turns: int = DEFAULT_CONTEXT_TURNS,
) -> ScopeDecision:
    normalized = normalize_message(message)
    stage = match_message_terms(normalized, policy)
    if stage is not None:
        return ScopeDecision(
            in_scope=True,
            stage=stage,
            evidence=ScopeEvidence(message=message, context=""),
        )

    context = await load_recent_context(
        provider=provider, thread_id=thread_id, limit=context_turns
    )
    decision = evaluate_heuristics(message, context, policy)
    if decision.in_scope:
        return decision

    return await classify_with_model(
        message=message,
        context=context,
        policy=policy,
        classifier=classifier,
    )
