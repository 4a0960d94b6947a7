from __future__ import annotations

from assistgate.core.config import AppConfig, extract_bearer_token
from assistgate.core.errors import AuthorizationError, TokenVerificationError


def check_allow_list(*, assistant_id: str, thread_id: str, config: AppConfig) -> None:
    if config.allowed_assistant_id and assistant_id != config.allowed_assistant_id:
        raise AuthorizationError("This assistant is not available on this deployment.")
    if config.allowed_thread_id and thread_id != config.allowed_thread_id:
        raise AuthorizationError("This thread is not available on this deployment.")


def check_admin_token(authorization: str | None, expected_token: str | None) -> None:
    if not expected_token:
        return
    if extract_bearer_token(authorization) != expected_token:
        raise TokenVerificationError("Unauthorized")
