from __future__ import annotations

import logging

from assistgate.core.errors import ClassificationTransportError

LOGGER = logging.getLogger(__name__)

DEFAULT_OPENAI_CLASSIFIER_MODEL = "gpt-4o-mini"
DEFAULT_GOOGLE_CLASSIFIER_MODEL = "gemini-2.5-flash"
CLASSIFIER_MAX_TOKENS = 3
# Stage B is a single attempt; failures fail open instead of retrying.
CLASSIFIER_MAX_RETRIES = 0


class ScopeClassifierModel:
    name = "base"

    async def classify(self, *, system_prompt: str, user_prompt: str) -> str:
        raise NotImplementedError


class DisabledScopeClassifier(ScopeClassifierModel):
    name = "disabled"

    async def classify(self, *, system_prompt: str, user_prompt: str) -> str:
        raise ClassificationTransportError("Scope classifier is not configured")


class OpenAIScopeClassifier(ScopeClassifierModel):
    name = "openai"

    def __init__(self, *, api_key: str, model: str, client=None) -> None:
        from openai import AsyncOpenAI

        self._client = client or AsyncOpenAI(
            api_key=api_key, max_retries=CLASSIFIER_MAX_RETRIES
        )
        self._model = model

    async def classify(self, *, system_prompt: str, user_prompt: str) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                temperature=0,
                max_tokens=CLASSIFIER_MAX_TOKENS,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
            content = response.choices[0].message.content
        except Exception as exc:
            raise ClassificationTransportError(
                f"OpenAI classification failed: {exc.__class__.__name__}"
            ) from exc
        if not isinstance(content, str):
            raise ClassificationTransportError("OpenAI classification returned no text")
        return content


class GeminiScopeClassifier(ScopeClassifierModel):
    name = "google"

    def __init__(self, *, api_key: str, model: str) -> None:
        from langchain_google_genai import ChatGoogleGenerativeAI

        self._model = ChatGoogleGenerativeAI(
            model=model,
            google_api_key=api_key,
            temperature=0.0,
            max_retries=CLASSIFIER_MAX_RETRIES,
        )

    async def classify(self, *, system_prompt: str, user_prompt: str) -> str:
        try:
            response = await self._model.ainvoke(
                [("system", system_prompt), ("human", user_prompt)]
            )
        except Exception as exc:
            raise ClassificationTransportError(
                f"Gemini classification failed: {exc.__class__.__name__}"
            ) from exc
        text = getattr(response, "text", None)
        if callable(text):
            text = text()
        if not isinstance(text, str):
            text = str(response.content)
        return text


def build_scope_classifier(
    *,
    backend: str,
    model: str | None,
    openai_api_key: str | None,
    google_api_key: str | None,
) -> ScopeClassifierModel:
    try:
        if backend == "openai" and openai_api_key:
            return OpenAIScopeClassifier(
                api_key=openai_api_key,
                model=model or DEFAULT_OPENAI_CLASSIFIER_MODEL,
            )
        if backend == "google" and google_api_key:
            return GeminiScopeClassifier(
                api_key=google_api_key,
                model=model or DEFAULT_GOOGLE_CLASSIFIER_MODEL,
            )
    except Exception:
        LOGGER.warning(
            "scope classifier backend %s unavailable; classifier disabled",
            backend,
            exc_info=True,
        )
        return DisabledScopeClassifier()
    if backend in ("openai", "google"):
        LOGGER.warning(
            "scope classifier backend %s has no API key; classifier disabled",
            backend,
        )
    return DisabledScopeClassifier()
