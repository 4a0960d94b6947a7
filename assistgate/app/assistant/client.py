from __future__ import annotations

import logging
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from assistgate.app.assistant.contracts import (
    ContentBlock,
    OtherBlock,
    Run,
    RunStatus,
    TextBlock,
    Turn,
)
from assistgate.core.errors import ProviderError

LOGGER = logging.getLogger(__name__)

# Appends and run creation are not idempotent; the SDK must not resend them.
PROVIDER_MAX_RETRIES = 0


def content_block_from_provider(block: Any) -> ContentBlock:
    kind = str(getattr(block, "type", "") or "unknown")
    if kind == "text":
        text = getattr(block, "text", None)
        value = getattr(text, "value", None)
        if isinstance(value, str):
            return TextBlock(text=value)
    if kind == "output_text":
        text = getattr(block, "text", None)
        if isinstance(text, str):
            return TextBlock(text=text)
    return OtherBlock(kind=kind)


def turn_from_provider(message: Any) -> Turn:
    blocks = getattr(message, "content", None) or []
    return Turn(
        role=str(getattr(message, "role", "")),
        content=tuple(content_block_from_provider(block) for block in blocks),
    )


def run_from_provider(run: Any, thread_id: str) -> Run:
    try:
        status = RunStatus(str(run.status))
    except ValueError as exc:
        raise ProviderError(f"Unknown run status: {run.status}") from exc
    return Run(
        run_id=str(run.id),
        thread_id=str(getattr(run, "thread_id", None) or thread_id),
        status=status,
    )


class OpenAIAssistantProvider:
    def __init__(
        self,
        *,
        api_key: str | None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._api_key = api_key
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise ProviderError("OPENAI_API_KEY is not configured")
            self._client = AsyncOpenAI(
                api_key=self._api_key, max_retries=PROVIDER_MAX_RETRIES
            )
        return self._client

    async def create_thread(self, metadata: dict[str, str] | None = None) -> str:
        kwargs: dict[str, Any] = {}
        if metadata:
            kwargs["metadata"] = metadata
        try:
            thread = await self._get_client().beta.threads.create(**kwargs)
        except OpenAIError as exc:
            raise ProviderError(f"Thread creation failed: {exc}") from exc
        return str(thread.id)

    async def append_turn(self, thread_id: str, role: str, content: str) -> Turn:
        try:
            message = await self._get_client().beta.threads.messages.create(
                thread_id, role=role, content=content
            )
        except OpenAIError as exc:
            raise ProviderError(f"Appending message failed: {exc}") from exc
        return turn_from_provider(message)

    async def create_run(
        self,
        thread_id: str,
        assistant_id: str,
        additional_instructions: str | None = None,
    ) -> Run:
        kwargs: dict[str, Any] = {"assistant_id": assistant_id}
        if additional_instructions:
            kwargs["additional_instructions"] = additional_instructions
        try:
            run = await self._get_client().beta.threads.runs.create(thread_id, **kwargs)
        except OpenAIError as exc:
            raise ProviderError(f"Run creation failed: {exc}") from exc
        return run_from_provider(run, thread_id)

    async def get_run(self, thread_id: str, run_id: str) -> Run:
        try:
            run = await self._get_client().beta.threads.runs.retrieve(
                run_id, thread_id=thread_id
            )
        except OpenAIError as exc:
            raise ProviderError(f"Fetching run status failed: {exc}") from exc
        return run_from_provider(run, thread_id)

    async def list_recent_turns(
        self, thread_id: str, *, order: str = "desc", limit: int = 10
    ) -> tuple[Turn, ...]:
        try:
            page = await self._get_client().beta.threads.messages.list(
                thread_id, order=order, limit=limit
            )
        except OpenAIError as exc:
            raise ProviderError(f"Listing messages failed: {exc}") from exc
        return tuple(turn_from_provider(message) for message in page.data)
