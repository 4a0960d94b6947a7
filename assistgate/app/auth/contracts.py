from __future__ import annotations

from dataclasses import dataclass

DEFAULT_LAUNCH_TITLE = "AI Assistant"


@dataclass(frozen=True)
class LaunchClaims:
    assistant_id: str
    thread_id: str
    title: str = DEFAULT_LAUNCH_TITLE
