from __future__ import annotations

import os
from dataclasses import dataclass

CLASSIFIER_BACKENDS = {"openai", "google", "disabled"}


@dataclass(frozen=True)
class AppConfig:
    app_name: str
    app_version: str
    environment: str
    openai_api_key: str | None
    google_api_key: str | None
    assistant_id: str | None
    allowed_assistant_id: str | None
    allowed_thread_id: str | None
    jwt_secret: str | None
    launch_token_ttl_seconds: int
    admin_newthread_token: str | None
    run_poll_interval_ms: int
    run_timeout_ms: int
    rate_limit_cooldown_ms: int
    max_message_chars: int
    scope_context_turns: int
    response_page_size: int
    classifier_backend: str
    classifier_model: str | None
    policy_path: str | None


def _read_optional_env(name: str) -> str | None:
    value = os.getenv(name)
    if not value:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _read_int_env(name: str, default: int) -> int:
    value = _read_optional_env(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_choice_env(name: str, choices: set[str], default: str) -> str:
    value = _read_optional_env(name)
    if value is None:
        return default
    normalized = value.lower()
    return normalized if normalized in choices else default


def load_app_config() -> AppConfig:
    return AppConfig(
        app_name=os.getenv("APP_NAME", "Assistgate Chat Gateway"),
        app_version=os.getenv("APP_VERSION", "0.1.0"),
        environment=os.getenv("APP_ENV", "development"),
        openai_api_key=_read_optional_env("OPENAI_API_KEY"),
        google_api_key=_read_optional_env("GEMINI_API_KEY")
        or _read_optional_env("GOOGLE_API_KEY"),
        assistant_id=_read_optional_env("ASSISTANT_ID"),
        allowed_assistant_id=_read_optional_env("ALLOWED_ASSISTANT_ID"),
        allowed_thread_id=_read_optional_env("ALLOWED_THREAD_ID"),
        jwt_secret=_read_optional_env("JWT_SECRET"),
        launch_token_ttl_seconds=_read_int_env("LAUNCH_TOKEN_TTL_SECONDS", default=600),
        admin_newthread_token=_read_optional_env("ADMIN_NEWTHREAD_TOKEN"),
        run_poll_interval_ms=_read_int_env("RUN_POLL_INTERVAL_MS", default=800),
        run_timeout_ms=_read_int_env("RUN_TIMEOUT_MS", default=60000),
        rate_limit_cooldown_ms=_read_int_env("RATE_LIMIT_COOLDOWN_MS", default=1500),
        max_message_chars=_read_int_env("MAX_MESSAGE_CHARS", default=4000),
        scope_context_turns=_read_int_env("SCOPE_CONTEXT_TURNS", default=6),
        response_page_size=_read_int_env("RESPONSE_PAGE_SIZE", default=10),
        classifier_backend=_read_choice_env(
            "CLASSIFIER_BACKEND", CLASSIFIER_BACKENDS, default="openai"
        ),
        classifier_model=_read_optional_env("CLASSIFIER_MODEL"),
        policy_path=_read_optional_env("POLICY_PATH"),
    )


def extract_bearer_token(authorization_header: str | None) -> str | None:
    if not isinstance(authorization_header, str):
        return None
    prefix = "Bearer "
    if not authorization_header.startswith(prefix):
        return None
    token = authorization_header[len(prefix) :].strip()
    return token if token else None
