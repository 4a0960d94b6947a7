from __future__ import annotations


class GatewayError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RequestValidationError(GatewayError):
    status_code = 400


class MessageTooLongError(RequestValidationError):
    status_code = 413


class AuthorizationError(GatewayError):
    status_code = 403


class TokenVerificationError(AuthorizationError):
    status_code = 401


class AuthConfigurationError(GatewayError):
    status_code = 503


class ThrottledError(GatewayError):
    status_code = 429

    def __init__(self, message: str, *, retry_after_ms: int) -> None:
        super().__init__(message)
        self.retry_after_ms = retry_after_ms


class ProviderError(GatewayError):
    status_code = 500


class ProviderTerminalError(ProviderError):
    def __init__(self, status: str) -> None:
        super().__init__(f"Run ended with status: {status}")
        self.status = status


class UnsupportedActionError(ProviderError):
    def __init__(self) -> None:
        super().__init__(
            "Run requires_action: the assistant is requesting tool output, "
            "which this gateway does not handle. Disable tools on the assistant."
        )


class RunTimeoutError(ProviderError):
    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Timeout waiting for run after {timeout_ms} ms.")
        self.timeout_ms = timeout_ms


class ClassificationTransportError(Exception):
    pass
