from __future__ import annotations

import math

from assistgate.app.throttle.contracts import ANONYMOUS_CLIENT_KEY, RateLimiterState
from assistgate.core.errors import ThrottledError


def client_key_from_forwarded(forwarded_for: str | None) -> str:
    if not forwarded_for:
        return ANONYMOUS_CLIENT_KEY
    first = forwarded_for.split(",")[0].strip()
    return first if first else ANONYMOUS_CLIENT_KEY


def acquire_slot(*, state: RateLimiterState, client_key: str, now: float) -> None:
    """Record an accepted call for ``client_key`` or raise ``ThrottledError``.

    ``now`` is in seconds from a monotonic clock. Rejected calls do not move
    the window forward.
    """
    cooldown_seconds = state.cooldown_ms / 1000
    with state.lock:
        last_call = state.last_call_by_key.get(client_key)
        if last_call is not None:
            elapsed = now - last_call
            if elapsed < cooldown_seconds:
                retry_after_ms = math.ceil((cooldown_seconds - elapsed) * 1000)
                raise ThrottledError(
                    "Too many requests. Please wait a moment and try again.",
                    retry_after_ms=max(retry_after_ms, 1),
                )
        state.last_call_by_key[client_key] = now
