from __future__ import annotations

import logging
import math
from urllib.parse import quote

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError as FastAPIValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from assistgate.app.assistant.client import OpenAIAssistantProvider
from assistgate.app.assistant.contracts import AssistantProvider
from assistgate.app.auth.access import check_admin_token
from assistgate.app.auth.contracts import DEFAULT_LAUNCH_TITLE, LaunchClaims
from assistgate.app.auth.verify import issue_launch_token, resolve_launch_token
from assistgate.app.gateway.contracts import ChatRequest
from assistgate.app.gateway.service import ChatGateway
from assistgate.app.llm.providers import ScopeClassifierModel, build_scope_classifier
from assistgate.app.orchestration.service import RunOrchestrator
from assistgate.app.throttle.contracts import RateLimiterState
from assistgate.app.throttle.service import client_key_from_forwarded
from assistgate.core.config import AppConfig, load_app_config
from assistgate.core.errors import GatewayError, RequestValidationError, ThrottledError
from assistgate.core.policy import PolicyBundle, load_policy_bundle

LOGGER = logging.getLogger(__name__)


class ChatPayload(BaseModel):
    assistant_id: str | None = None
    thread_id: str | None = None
    message: str | None = None


class NewThreadPayload(BaseModel):
    metadata: dict[str, str] | None = None


def _error_response(exc: GatewayError) -> JSONResponse:
    headers: dict[str, str] = {}
    if isinstance(exc, ThrottledError):
        headers["Retry-After"] = str(max(math.ceil(exc.retry_after_ms / 1000), 1))
    return JSONResponse(
        content={"error": exc.message},
        status_code=exc.status_code,
        headers=headers,
    )


def create_app(
    *,
    config: AppConfig | None = None,
    policy: PolicyBundle | None = None,
    provider: AssistantProvider | None = None,
    classifier: ScopeClassifierModel | None = None,
    rate_limiter: RateLimiterState | None = None,
    orchestrator: RunOrchestrator | None = None,
) -> FastAPI:
    config = config or load_app_config()
    policy = policy or load_policy_bundle(config.policy_path)
    provider = provider or OpenAIAssistantProvider(api_key=config.openai_api_key)
    classifier = classifier or build_scope_classifier(
        backend=config.classifier_backend,
        model=config.classifier_model,
        openai_api_key=config.openai_api_key,
        google_api_key=config.google_api_key,
    )
    rate_limiter = rate_limiter or RateLimiterState(
        cooldown_ms=config.rate_limit_cooldown_ms
    )
    orchestrator = orchestrator or RunOrchestrator(
        provider,
        poll_interval_ms=config.run_poll_interval_ms,
        timeout_ms=config.run_timeout_ms,
    )
    gateway = ChatGateway(
        config=config,
        policy=policy,
        provider=provider,
        classifier=classifier,
        rate_limiter=rate_limiter,
        orchestrator=orchestrator,
    )

    app = FastAPI(title=config.app_name, version=config.app_version)

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(_request: Request, exc: GatewayError) -> JSONResponse:
        return _error_response(exc)

    @app.exception_handler(FastAPIValidationError)
    async def request_validation_handler(
        _request: Request, exc: FastAPIValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        detail = errors[0].get("msg") if errors else "Invalid request body"
        return JSONResponse(content={"error": str(detail)}, status_code=400)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/ready")
    async def ready() -> JSONResponse:
        checks = {
            "openai_api_key": bool(config.openai_api_key),
            "jwt_secret": bool(config.jwt_secret),
            "scope_classifier": classifier.name,
        }
        is_ready = bool(config.openai_api_key)
        return JSONResponse(
            content={"ready": is_ready, "environment": config.environment, **checks},
            status_code=200 if is_ready else 503,
        )

    @app.post("/api/chat")
    async def chat(
        payload: ChatPayload,
        x_forwarded_for: str | None = Header(default=None, alias="X-Forwarded-For"),
    ) -> JSONResponse:
        try:
            reply = await gateway.handle(
                ChatRequest(
                    assistant_id=payload.assistant_id,
                    thread_id=payload.thread_id,
                    message=payload.message,
                ),
                client_key=client_key_from_forwarded(x_forwarded_for),
            )
        except GatewayError as exc:
            if exc.status_code >= 500:
                LOGGER.error("chat request failed: %s", exc.message, exc_info=True)
            return _error_response(exc)
        except Exception as exc:
            LOGGER.exception("chat request failed unexpectedly")
            return JSONResponse(
                content={"error": str(exc) or "Unknown error"}, status_code=500
            )
        return JSONResponse(content={"ok": True, "text": reply.text})

    @app.get("/api/issue")
    async def issue(
        assistant_id: str = "",
        thread_id: str = "",
        title: str = DEFAULT_LAUNCH_TITLE,
    ) -> RedirectResponse:
        assistant_id = assistant_id.strip() or (config.assistant_id or "")
        thread_id = thread_id.strip()
        if not assistant_id or not thread_id:
            raise RequestValidationError("assistant_id and thread_id are required")
        token = issue_launch_token(
            LaunchClaims(
                assistant_id=assistant_id,
                thread_id=thread_id,
                title=title.strip() or DEFAULT_LAUNCH_TITLE,
            ),
            secret=config.jwt_secret,
            ttl_seconds=config.launch_token_ttl_seconds,
        )
        return RedirectResponse(url=f"/launch?token={quote(token)}", status_code=302)

    @app.get("/api/token/resolve")
    async def token_resolve(token: str = "") -> dict[str, object]:
        if not token.strip():
            raise RequestValidationError("Missing token")
        claims = resolve_launch_token(token.strip(), secret=config.jwt_secret)
        return {
            "ok": True,
            "assistant_id": claims.assistant_id,
            "thread_id": claims.thread_id,
            "title": claims.title,
        }

    @app.post("/api/new-thread")
    async def new_thread(
        payload: NewThreadPayload | None = None,
        authorization: str | None = Header(default=None, alias="Authorization"),
    ) -> dict[str, object]:
        check_admin_token(authorization, config.admin_newthread_token)
        metadata = payload.metadata if payload else None
        thread_id = await provider.create_thread(metadata)
        return {"ok": True, "thread_id": thread_id}

    return app
