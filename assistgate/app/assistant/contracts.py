from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    CANCELLING = "cancelling"
    REQUIRES_ACTION = "requires_action"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    INCOMPLETE = "incomplete"


TERMINAL_RUN_STATUSES = frozenset(
    {
        RunStatus.REQUIRES_ACTION,
        RunStatus.COMPLETED,
        RunStatus.FAILED,
        RunStatus.CANCELLED,
        RunStatus.EXPIRED,
        RunStatus.INCOMPLETE,
    }
)


@dataclass(frozen=True)
class TextBlock:
    text: str


@dataclass(frozen=True)
class OtherBlock:
    kind: str


ContentBlock = TextBlock | OtherBlock


@dataclass(frozen=True)
class Turn:
    role: str
    content: tuple[ContentBlock, ...]


@dataclass(frozen=True)
class Run:
    run_id: str
    thread_id: str
    status: RunStatus


class AssistantProvider(Protocol):
    async def create_thread(self, metadata: dict[str, str] | None = None) -> str: ...

    async def append_turn(self, thread_id: str, role: str, content: str) -> Turn: ...

    async def create_run(
        self,
        thread_id: str,
        assistant_id: str,
        additional_instructions: str | None = None,
    ) -> Run: ...

    async def get_run(self, thread_id: str, run_id: str) -> Run: ...

    async def list_recent_turns(
        self, thread_id: str, *, order: str = "desc", limit: int = 10
    ) -> tuple[Turn, ...]: ...
