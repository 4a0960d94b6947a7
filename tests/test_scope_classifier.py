from __future__ import annotations

import pytest

from assistgate.app.assistant.contracts import ROLE_ASSISTANT, ROLE_USER
from assistgate.app.scope.contracts import (
    SCOPE_STAGE_CLASSIFIER,
    SCOPE_STAGE_CLASSIFIER_FAIL_OPEN,
    SCOPE_STAGE_CONTEXT_FOLLOW_UP,
)
from assistgate.app.scope.service import classify_scope


@pytest.mark.asyncio
async def test_strong_term_skips_context_and_classifier(
    policy_bundle, fake_provider, fake_classifier
) -> None:
    decision = await classify_scope(
        message="Dove trovo il conto economico?",
        thread_id="thread_1",
        provider=fake_provider,
        classifier=fake_classifier,
        policy=policy_bundle.scope,
    )

    assert decision.in_scope is True
    assert fake_classifier.calls == []
    assert fake_provider.list_calls == []


@pytest.mark.asyncio
async def test_follow_up_uses_recent_thread_context(
    policy_bundle, fake_provider, fake_classifier
) -> None:
    fake_provider.seed_turn(ROLE_USER, "Qual è il prezzo medio nel foglio input?")
    fake_provider.seed_turn(ROLE_ASSISTANT, "È nella riga 12【3:1†prezzi.xlsx】.")

    decision = await classify_scope(
        message="Aumentalo del 10",
        thread_id="thread_1",
        provider=fake_provider,
        classifier=fake_classifier,
        policy=policy_bundle.scope,
        context_turns=4,
    )

    assert decision.stage == SCOPE_STAGE_CONTEXT_FOLLOW_UP
    assert fake_provider.list_calls == [("thread_1", "desc", 4)]
    assert decision.evidence.context.startswith("user: Qual è il prezzo")
    assert "【" not in decision.evidence.context
    assert fake_classifier.calls == []


@pytest.mark.asyncio
async def test_inconclusive_message_is_rejected_when_classifier_says_out(
    policy_bundle, fake_provider, fake_classifier
) -> None:
    fake_classifier.reply = "OUT"

    decision = await classify_scope(
        message="che tempo fa oggi?",
        thread_id="thread_1",
        provider=fake_provider,
        classifier=fake_classifier,
        policy=policy_bundle.scope,
    )

    assert decision.in_scope is False
    assert decision.stage == SCOPE_STAGE_CLASSIFIER
    assert len(fake_classifier.calls) == 1


@pytest.mark.asyncio
async def test_inconclusive_message_is_accepted_when_classifier_says_in(
    policy_bundle, fake_provider, fake_classifier
) -> None:
    fake_classifier.reply = "in"

    decision = await classify_scope(
        message="e per il secondo semestre?",
        thread_id="thread_1",
        provider=fake_provider,
        classifier=fake_classifier,
        policy=policy_bundle.scope,
    )

    assert decision.in_scope is True
    assert decision.stage == SCOPE_STAGE_CLASSIFIER


@pytest.mark.asyncio
async def test_classifier_transport_failure_fails_open(
    policy_bundle, fake_provider, fake_classifier, caplog
) -> None:
    fake_classifier.fail = True

    decision = await classify_scope(
        message="che tempo fa oggi?",
        thread_id="thread_1",
        provider=fake_provider,
        classifier=fake_classifier,
        policy=policy_bundle.scope,
    )

    assert decision.in_scope is True
    assert decision.stage == SCOPE_STAGE_CLASSIFIER_FAIL_OPEN
    assert decision.confirmed is False
    assert any("failed open" in message for message in caplog.messages)


@pytest.mark.asyncio
async def test_unparseable_classifier_reply_fails_open(
    policy_bundle, fake_provider, fake_classifier
) -> None:
    fake_classifier.reply = "Non saprei"

    decision = await classify_scope(
        message="che tempo fa oggi?",
        thread_id="thread_1",
        provider=fake_provider,
        classifier=fake_classifier,
        policy=policy_bundle.scope,
    )

    assert decision.in_scope is True
    assert decision.stage == SCOPE_STAGE_CLASSIFIER_FAIL_OPEN
