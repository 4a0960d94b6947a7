from __future__ import annotations

from assistgate.app.assistant.contracts import (
    ROLE_ASSISTANT,
    AssistantProvider,
    OtherBlock,
    TextBlock,
    Turn,
)
from assistgate.app.response.contracts import (
    ANSWER_POLICY_ANSWERED,
    ANSWER_POLICY_FALLBACK,
    ResolvedAnswer,
    ResponsePolicy,
)
from assistgate.app.sanitize.service import fold_for_matching, sanitize_text

DEFAULT_RESPONSE_PAGE_SIZE = 10


def turn_text(turn: Turn, separator: str = "\n\n") -> str:
    parts: list[str] = []
    for block in turn.content:
        if isinstance(block, TextBlock):
            parts.append(block.text)
        elif isinstance(block, OtherBlock):
            continue
        else:
            raise TypeError(f"Unhandled content block: {type(block).__name__}")
    return separator.join(parts)


def latest_assistant_text(turns: tuple[Turn, ...]) -> str:
    latest = next((turn for turn in turns if turn.role == ROLE_ASSISTANT), None)
    if latest is None:
        return ""
    return turn_text(latest)


def _matched_uncertainty_phrase(text: str, phrases: tuple[str, ...]) -> str | None:
    folded = fold_for_matching(text)
    return next((phrase for phrase in phrases if phrase in folded), None)


def apply_fallback(raw_text: str, policy: ResponsePolicy) -> ResolvedAnswer:
    cleaned = sanitize_text(raw_text)
    if not cleaned:
        return ResolvedAnswer(
            text=policy.fallback_message,
            policy=ANSWER_POLICY_FALLBACK,
        )
    matched = _matched_uncertainty_phrase(cleaned, policy.uncertainty_phrases)
    if matched is not None:
        return ResolvedAnswer(
            text=policy.fallback_message,
            policy=ANSWER_POLICY_FALLBACK,
            matched_phrase=matched,
        )
    return ResolvedAnswer(
        text=cleaned,
        policy=ANSWER_POLICY_ANSWERED,
    )


async def resolve_answer(
    *,
    provider: AssistantProvider,
    thread_id: str,
    policy: ResponsePolicy,
    page_size: int = DEFAULT_RESPONSE_PAGE_SIZE,
) -> ResolvedAnswer:
    turns = await provider.list_recent_turns(thread_id, order="desc", limit=page_size)
    return apply_fallback(latest_assistant_text(turns), policy)
