"""Error taxonomy shared by the remote client adapters, executor and orchestrator."""

from __future__ import annotations

from typing import ClassVar


class GenerationError(RuntimeError):
    """Base error for a failed call to the generation service."""

    retryable: ClassVar[bool] = False


class AuthError(GenerationError):
    """Invalid or missing credentials. Never retried."""


class RateLimited(GenerationError):
    """The service rejected the call with HTTP 429."""

    retryable = True


class ServiceUnavailable(GenerationError):
    """The service is overloaded or temporarily down (HTTP 5xx)."""

    retryable = True


class NetworkError(GenerationError):
    """Transport-level failure before a response was received."""

    retryable = True


class RequestTimeout(GenerationError):
    """The call did not finish inside its timeout budget."""

    retryable = True


class RemoteServiceError(GenerationError):
    """Any other failure reported by the service; treated as fatal."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(GenerationError):
    """Model output could not be decoded into the expected structure."""


class NotAuthorized(RuntimeError):
    """Generation requested before the session was paid for and the profile confirmed."""


class JobInProgress(RuntimeError):
    """A job for the same content type is already running."""


def classify_status(status_code: int | None, message: str) -> GenerationError:
    """Map an HTTP-style status code onto the taxonomy."""
    if status_code in (401, 403):
        return AuthError(message)
    if status_code == 429:
        return RateLimited(message)
    if status_code in (500, 502, 503, 504):
        return ServiceUnavailable(message)
    return RemoteServiceError(message, status_code=status_code)


def describe_error(exc: BaseException) -> str:
    """Return an actionable, user-facing message for a failed job."""
    if isinstance(exc, AuthError):
        return "Invalid API key. Please verify your configuration."
    if isinstance(exc, RateLimited):
        return "High traffic. Please retry shortly."
    if isinstance(exc, ServiceUnavailable):
        return "AI service temporarily unavailable. Please try again later."
    if isinstance(exc, NetworkError):
        return "Network error. Please check your internet connection."
    if isinstance(exc, RequestTimeout):
        return "The request timed out. Please try again."
    if isinstance(exc, ParseError):
        return "The generated output could not be read. Please regenerate."
    if isinstance(exc, NotAuthorized):
        return "Confirm your profile and unlock the session to generate content."
    return f"Generation failed: {str(exc)[:100]}."
