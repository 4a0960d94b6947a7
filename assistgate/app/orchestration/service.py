from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from assistgate.app.assistant.contracts import (
    ROLE_USER,
    TERMINAL_RUN_STATUSES,
    AssistantProvider,
    Run,
    RunStatus,
)
from assistgate.core.errors import (
    ProviderTerminalError,
    RunTimeoutError,
    UnsupportedActionError,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_MS = 800
DEFAULT_RUN_TIMEOUT_MS = 60000

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


def raise_for_terminal_status(run: Run) -> None:
    if run.status == RunStatus.COMPLETED:
        return
    if run.status == RunStatus.REQUIRES_ACTION:
        raise UnsupportedActionError()
    raise ProviderTerminalError(run.status.value)


class RunOrchestrator:
    """Submits one user turn, starts a run and blocks until it settles.

    Not idempotent: each ``submit`` appends a new user turn, and duplicates
    are not detected upstream.
    """

    def __init__(
        self,
        provider: AssistantProvider,
        *,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        timeout_ms: int = DEFAULT_RUN_TIMEOUT_MS,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._poll_interval_ms = poll_interval_ms
        self._timeout_ms = timeout_ms
        self._clock = clock
        self._sleep = sleep

    async def submit(
        self,
        *,
        thread_id: str,
        assistant_id: str,
        message: str,
        additional_instructions: str | None = None,
    ) -> Run:
        await self._provider.append_turn(thread_id, ROLE_USER, message)
        run = await self._provider.create_run(
            thread_id,
            assistant_id,
            additional_instructions=additional_instructions,
        )
        LOGGER.info(
            "run_created thread_id=%s run_id=%s status=%s",
            thread_id,
            run.run_id,
            run.status.value,
        )
        return await self.wait_for_run(run)

    async def wait_for_run(self, run: Run) -> Run:
        if run.status in TERMINAL_RUN_STATUSES:
            raise_for_terminal_status(run)
            return run

        interval_seconds = self._poll_interval_ms / 1000
        timeout_seconds = self._timeout_ms / 1000
        started_at = self._clock()
        polls = 0
        while self._clock() - started_at < timeout_seconds:
            current = await self._provider.get_run(run.thread_id, run.run_id)
            polls += 1
            if current.status in TERMINAL_RUN_STATUSES:
                LOGGER.info(
                    "run_settled run_id=%s status=%s polls=%d",
                    current.run_id,
                    current.status.value,
                    polls,
                )
                raise_for_terminal_status(current)
                return current
            await self._sleep(interval_seconds)

        # The run keeps going upstream; no cancellation is issued.
        LOGGER.warning(
            "run_timeout run_id=%s polls=%d timeout_ms=%d",
            run.run_id,
            polls,
            self._timeout_ms,
        )
        raise RunTimeoutError(self._timeout_ms)
