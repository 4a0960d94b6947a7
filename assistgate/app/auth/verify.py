from __future__ import annotations

import time

import jwt
from jwt import InvalidTokenError

from assistgate.app.auth.contracts import DEFAULT_LAUNCH_TITLE, LaunchClaims
from assistgate.core.errors import AuthConfigurationError, TokenVerificationError

LAUNCH_TOKEN_ALGORITHM = "HS256"
DEFAULT_LAUNCH_TOKEN_TTL_SECONDS = 10 * 60


def _require_secret(secret: str | None) -> str:
    if not secret:
        raise AuthConfigurationError("Launch tokens are not configured (missing JWT_SECRET)")
    return secret


def issue_launch_token(
    claims: LaunchClaims,
    *,
    secret: str | None,
    ttl_seconds: int = DEFAULT_LAUNCH_TOKEN_TTL_SECONDS,
    now: int | None = None,
) -> str:
    signing_secret = _require_secret(secret)
    issued_at = int(time.time()) if now is None else now
    payload = {
        "assistant_id": claims.assistant_id,
        "thread_id": claims.thread_id,
        "title": claims.title,
        "iat": issued_at,
        "exp": issued_at + ttl_seconds,
    }
    return jwt.encode(payload, signing_secret, algorithm=LAUNCH_TOKEN_ALGORITHM)


def resolve_launch_token(token: str, *, secret: str | None) -> LaunchClaims:
    signing_secret = _require_secret(secret)
    try:
        payload = jwt.decode(
            token,
            signing_secret,
            algorithms=[LAUNCH_TOKEN_ALGORITHM],
            options={"require": ["exp"]},
        )
    except InvalidTokenError as exc:
        raise TokenVerificationError("Invalid or expired token") from exc

    assistant_id = str(payload.get("assistant_id") or "")
    thread_id = str(payload.get("thread_id") or "")
    if not assistant_id or not thread_id:
        raise TokenVerificationError("Invalid token payload")
    return LaunchClaims(
        assistant_id=assistant_id,
        thread_id=thread_id,
        title=str(payload.get("title") or DEFAULT_LAUNCH_TITLE),
    )
