from __future__ import annotations

import logging
import time

from assistgate.app.assistant.contracts import AssistantProvider
from assistgate.app.auth.access import check_allow_list
from assistgate.app.gateway.contracts import (
    ChatReply,
    ChatRequest,
    ValidatedChatRequest,
)
from assistgate.app.llm.providers import ScopeClassifierModel
from assistgate.app.observability.contracts import (
    OUTCOME_ANSWERED,
    OUTCOME_ERROR,
    OUTCOME_FALLBACK,
    OUTCOME_OUT_OF_SCOPE,
    StepTrace,
)
from assistgate.app.observability.service import (
    create_trace,
    emit_chat_telemetry,
    step_trace,
)
from assistgate.app.orchestration.service import Clock, RunOrchestrator
from assistgate.app.response.contracts import ANSWER_POLICY_FALLBACK
from assistgate.app.response.service import resolve_answer
from assistgate.app.scope.service import classify_scope
from assistgate.app.throttle.contracts import RateLimiterState
from assistgate.app.throttle.service import acquire_slot
from assistgate.core.config import AppConfig
from assistgate.core.errors import (
    GatewayError,
    MessageTooLongError,
    RequestValidationError,
)
from assistgate.core.policy import PolicyBundle

LOGGER = logging.getLogger(__name__)


def validate_chat_request(
    request: ChatRequest, *, max_message_chars: int
) -> ValidatedChatRequest:
    assistant_id = (request.assistant_id or "").strip()
    thread_id = (request.thread_id or "").strip()
    message = request.message if isinstance(request.message, str) else ""
    if not assistant_id or not thread_id or not message.strip():
        raise RequestValidationError(
            "assistant_id, thread_id, and message are required."
        )
    if len(message) > max_message_chars:
        raise MessageTooLongError(
            f"Message is too long (max {max_message_chars} characters)."
        )
    return ValidatedChatRequest(
        assistant_id=assistant_id, thread_id=thread_id, message=message
    )


class ChatGateway:
    def __init__(
        self,
        *,
        config: AppConfig,
        policy: PolicyBundle,
        provider: AssistantProvider,
        classifier: ScopeClassifierModel,
        rate_limiter: RateLimiterState,
        orchestrator: RunOrchestrator,
        clock: Clock = time.monotonic,
    ) -> None:
        self._config = config
        self._policy = policy
        self._provider = provider
        self._classifier = classifier
        self._rate_limiter = rate_limiter
        self._orchestrator = orchestrator
        self._clock = clock

    async def handle(self, request: ChatRequest, *, client_key: str) -> ChatReply:
        started_at = time.perf_counter()
        steps: list[StepTrace] = []
        scope_stage: str | None = None
        try:
            acquire_slot(
                state=self._rate_limiter, client_key=client_key, now=self._clock()
            )
            validated = validate_chat_request(
                request, max_message_chars=self._config.max_message_chars
            )
            check_allow_list(
                assistant_id=validated.assistant_id,
                thread_id=validated.thread_id,
                config=self._config,
            )

            step_started = time.perf_counter()
            decision = await classify_scope(
                message=validated.message,
                thread_id=validated.thread_id,
                provider=self._provider,
                classifier=self._classifier,
                policy=self._policy.scope,
                context_turns=self._config.scope_context_turns,
            )
            scope_stage = decision.stage
            steps.append(step_trace("scope", step_started))
            if not decision.in_scope:
                trace = create_trace(OUTCOME_OUT_OF_SCOPE, scope_stage, started_at)
                emit_chat_telemetry(trace, steps)
                return ChatReply(
                    text=self._policy.scope.refusal_message,
                    outcome=OUTCOME_OUT_OF_SCOPE,
                    trace=trace,
                )

            step_started = time.perf_counter()
            await self._orchestrator.submit(
                thread_id=validated.thread_id,
                assistant_id=validated.assistant_id,
                message=validated.message,
                additional_instructions=self._policy.response.assistant_instructions,
            )
            steps.append(step_trace("run", step_started))

            step_started = time.perf_counter()
            answer = await resolve_answer(
                provider=self._provider,
                thread_id=validated.thread_id,
                policy=self._policy.response,
                page_size=self._config.response_page_size,
            )
            steps.append(step_trace("resolve", step_started))
        except Exception as exc:
            error_message = (
                exc.message
                if isinstance(exc, GatewayError)
                else exc.__class__.__name__
            )
            steps.append(
                step_trace(
                    "failed", started_at, status="error", error_message=error_message
                )
            )
            emit_chat_telemetry(
                create_trace(OUTCOME_ERROR, scope_stage, started_at), steps
            )
            raise

        outcome = (
            OUTCOME_FALLBACK
            if answer.policy == ANSWER_POLICY_FALLBACK
            else OUTCOME_ANSWERED
        )
        trace = create_trace(
            outcome, scope_stage, started_at, matched_phrase=answer.matched_phrase
        )
        emit_chat_telemetry(trace, steps)
        return ChatReply(text=answer.text, outcome=outcome, trace=trace)
