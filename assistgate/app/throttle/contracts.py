from __future__ import annotations

import threading
from dataclasses import dataclass, field

ANONYMOUS_CLIENT_KEY = "anonymous"


@dataclass
class RateLimiterState:
    cooldown_ms: int
    last_call_by_key: dict[str, float] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
