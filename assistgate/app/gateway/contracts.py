from __future__ import annotations

from dataclasses import dataclass

from assistgate.app.observability.contracts import ChatTrace


@dataclass(frozen=True)
class ChatRequest:
    assistant_id: str | None
    thread_id: str | None
    message: str | None


@dataclass(frozen=True)
class ValidatedChatRequest:
    assistant_id: str
    thread_id: str
    message: str


@dataclass(frozen=True)
class ChatReply:
    text: str
    outcome: str
    trace: ChatTrace
