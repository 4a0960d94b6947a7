from __future__ import annotations

import pytest

from assistgate.app.assistant.contracts import (
    ROLE_ASSISTANT,
    Run,
    RunStatus,
    TextBlock,
    Turn,
)
from assistgate.app.llm.providers import ScopeClassifierModel
from assistgate.core.config import AppConfig
from assistgate.core.errors import ClassificationTransportError
from assistgate.core.policy import PolicyBundle, load_policy_bundle


def base_config() -> AppConfig:
    return AppConfig(
        app_name="Assistgate Test",
        app_version="0.0.0",
        environment="test",
        openai_api_key=None,
        google_api_key=None,
        assistant_id=None,
        allowed_assistant_id=None,
        allowed_thread_id=None,
        jwt_secret="test-secret-for-launch-tokens-0123456789",
        launch_token_ttl_seconds=600,
        admin_newthread_token=None,
        run_poll_interval_ms=800,
        run_timeout_ms=60000,
        rate_limit_cooldown_ms=1500,
        max_message_chars=4000,
        scope_context_turns=6,
        response_page_size=10,
        classifier_backend="disabled",
        classifier_model=None,
        policy_path=None,
    )


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeAssistantProvider:
    def __init__(self) -> None:
        self.history: list[Turn] = []
        self.run_statuses: list[str] = ["completed"]
        self.initial_status = "queued"
        self.assistant_reply: tuple[TextBlock, ...] | None = (
            TextBlock(text="Il conto economico si trova nel foglio Report."),
        )
        self.appended: list[tuple[str, str, str]] = []
        self.created_runs: list[tuple[str, str, str | None]] = []
        self.created_threads: list[dict[str, str] | None] = []
        self.status_polls = 0
        self.list_calls: list[tuple[str, str, int]] = []

    def seed_turn(self, role: str, text: str) -> None:
        self.history.append(Turn(role=role, content=(TextBlock(text=text),)))

    async def create_thread(self, metadata: dict[str, str] | None = None) -> str:
        self.created_threads.append(metadata)
        return f"thread_{len(self.created_threads)}"

    async def append_turn(self, thread_id: str, role: str, content: str) -> Turn:
        self.appended.append((thread_id, role, content))
        turn = Turn(role=role, content=(TextBlock(text=content),))
        self.history.append(turn)
        return turn

    async def create_run(
        self,
        thread_id: str,
        assistant_id: str,
        additional_instructions: str | None = None,
    ) -> Run:
        self.created_runs.append((thread_id, assistant_id, additional_instructions))
        return Run(
            run_id="run_1",
            thread_id=thread_id,
            status=RunStatus(self.initial_status),
        )

    async def get_run(self, thread_id: str, run_id: str) -> Run:
        index = min(self.status_polls, len(self.run_statuses) - 1)
        status = RunStatus(self.run_statuses[index])
        self.status_polls += 1
        if status == RunStatus.COMPLETED and self.assistant_reply is not None:
            self.history.append(Turn(role=ROLE_ASSISTANT, content=self.assistant_reply))
        return Run(run_id=run_id, thread_id=thread_id, status=status)

    async def list_recent_turns(
        self, thread_id: str, *, order: str = "desc", limit: int = 10
    ) -> tuple[Turn, ...]:
        self.list_calls.append((thread_id, order, limit))
        ordered = list(reversed(self.history)) if order == "desc" else self.history
        return tuple(ordered[:limit])


class FakeScopeClassifier(ScopeClassifierModel):
    name = "fake"

    def __init__(self, reply: str = "IN") -> None:
        self.reply = reply
        self.fail = False
        self.calls: list[tuple[str, str]] = []

    async def classify(self, *, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.fail:
            raise ClassificationTransportError("connection reset")
        return self.reply


@pytest.fixture
def app_config() -> AppConfig:
    return base_config()


@pytest.fixture
def policy_bundle() -> PolicyBundle:
    return load_policy_bundle()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_provider() -> FakeAssistantProvider:
    return FakeAssistantProvider()


@pytest.fixture
def fake_classifier() -> FakeScopeClassifier:
    return FakeScopeClassifier()

