from __future__ import annotations

import pytest

from assistgate.app.assistant.contracts import (
    ROLE_ASSISTANT,
    ROLE_USER,
    OtherBlock,
    TextBlock,
    Turn,
)
from assistgate.app.response.contracts import (
    ANSWER_POLICY_ANSWERED,
    ANSWER_POLICY_FALLBACK,
)
from assistgate.app.response.service import (
    apply_fallback,
    latest_assistant_text,
    resolve_answer,
)
from assistgate.core.policy import parse_policy_bundle


def test_latest_assistant_text_joins_text_blocks_and_skips_others() -> None:
    turns = (
        Turn(role=ROLE_USER, content=(TextBlock(text="domanda"),)),
        Turn(
            role=ROLE_ASSISTANT,
            content=(
                TextBlock(text="primo"),
                OtherBlock(kind="image_file"),
                TextBlock(text="secondo"),
            ),
        ),
        Turn(role=ROLE_ASSISTANT, content=(TextBlock(text="vecchia risposta"),)),
    )

    assert latest_assistant_text(turns) == "primo\n\nsecondo"


def test_latest_assistant_text_without_assistant_turn_is_empty() -> None:
    turns = (Turn(role=ROLE_USER, content=(TextBlock(text="domanda"),)),)

    assert latest_assistant_text(turns) == ""


def test_uncertainty_phrase_is_replaced_by_fallback(policy_bundle) -> None:
    answer = apply_fallback("Non sono in grado di aiutare", policy_bundle.response)

    assert answer.policy == ANSWER_POLICY_FALLBACK
    assert answer.text == policy_bundle.response.fallback_message
    assert answer.matched_phrase == "non sono in grado"


def test_english_uncertainty_phrase_is_replaced_by_fallback(policy_bundle) -> None:
    answer = apply_fallback(
        "Sorry, I don't have enough information to answer.", policy_bundle.response
    )

    assert answer.text == policy_bundle.response.fallback_message


@pytest.mark.parametrize("raw", ["", "   ", "【4:0†fonte】"])
def test_empty_answer_after_sanitizing_is_replaced(policy_bundle, raw: str) -> None:
    answer = apply_fallback(raw, policy_bundle.response)

    assert answer.policy == ANSWER_POLICY_FALLBACK
    assert answer.text == policy_bundle.response.fallback_message


def test_confident_answer_is_sanitized(policy_bundle) -> None:
    answer = apply_fallback(
        "Apri il foglio  Report【4:0†fonte】.\n\nPoi scegli l'anno.",
        policy_bundle.response,
    )

    assert answer.policy == ANSWER_POLICY_ANSWERED
    assert answer.text == "Apri il foglio Report. Poi scegli l'anno."


@pytest.mark.asyncio
async def test_resolve_answer_reads_newest_page(policy_bundle, fake_provider) -> None:
    fake_provider.seed_turn(ROLE_USER, "domanda")
    fake_provider.history.append(
        Turn(
            role=ROLE_ASSISTANT,
            content=(TextBlock(text="non sono in grado di aiutare"),),
        )
    )

    answer = await resolve_answer(
        provider=fake_provider,
        thread_id="thread_1",
        policy=policy_bundle.response,
        page_size=5,
    )

    assert answer.text == policy_bundle.response.fallback_message
    assert fake_provider.list_calls == [("thread_1", "desc", 5)]


def test_typographic_apostrophe_matches_uncertainty_phrase(policy_bundle) -> None:
    answer = apply_fallback(
        "I don’t have enough information to answer.", policy_bundle.response
    )

    assert answer.policy == ANSWER_POLICY_FALLBACK
    assert answer.matched_phrase == "i don't have enough information"


def test_line_break_inside_uncertainty_phrase_still_matches(policy_bundle) -> None:
    answer = apply_fallback("Purtroppo non lo\nso.", policy_bundle.response)

    assert answer.policy == ANSWER_POLICY_FALLBACK
    assert answer.matched_phrase == "non lo so"


def test_policy_phrases_are_folded_like_answers() -> None:
    bundle = parse_policy_bundle(
        {
            "scope": {
                "strong_terms": ["conto economico"],
                "weak_terms": [],
                "action_terms": [],
                "domain_description": "modello",
                "refusal_message": "fuori tema",
            },
            "response": {
                "uncertainty_phrases": ["I Don‘t   Know"],
                "fallback_message": "contattaci",
            },
        }
    )

    assert bundle.response.uncertainty_phrases == ("i don't know",)
    answer = apply_fallback("Honestly, I don't know.", bundle.response)
    assert answer.text == "contattaci"
