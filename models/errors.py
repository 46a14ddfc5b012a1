"""Error taxonomy shared by the clients, the state machine and the HTTP adapter."""

from __future__ import annotations


class GarmentStudioError(Exception):
    """Base error. ``retryable`` tells the workflow whether to re-enter a step."""

    retryable: bool = False
    default_message: str = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.detail = detail

    @property
    def user_message(self) -> str:
        return str(self)


class ValidationError(GarmentStudioError):
    """Empty or invalid request. Raised locally and never reaches the network."""

    default_message = "Please describe the garment you want to create."


class AuthError(GarmentStudioError):
    """The provider rejected our credentials. The user must re-authenticate."""

    default_message = "Authentication failed. Please sign in again."


class RateLimited(GarmentStudioError):
    """HTTP 429 from a provider."""

    retryable = True
    default_message = "API rate limit exceeded. Please try again later."

    def __init__(
        self,
        message: str | None = None,
        *,
        detail: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, detail=detail)
        self.retry_after = retry_after


class ServiceUnavailable(GarmentStudioError):
    """5xx responses, timeouts and connection failures."""

    retryable = True
    default_message = "Service is temporarily unavailable. Please try again."


class BadRequest(GarmentStudioError):
    """A 4xx the provider will keep refusing, such as 400, 404 or 422."""

    default_message = "The service rejected the request."


class MalformedResponse(GarmentStudioError):
    """The provider answered 2xx but the payload carried no usable image."""

    default_message = "No image returned"


class TryOnRejected(GarmentStudioError):
    """The try-on service answered but reported it could not composite the garment."""

    default_message = "Virtual try-on could not apply this garment."


class WorkflowBusyError(GarmentStudioError):
    """A transition was requested while another one is in flight on the session."""

    default_message = "This request is already being processed."


class InvalidTransitionError(GarmentStudioError):
    """The requested action is not allowed from the session's current step."""


class UnknownSessionError(GarmentStudioError, KeyError):
    """No workflow session exists for the given id."""

    default_message = "Unknown workflow session."

    def __str__(self) -> str:
        return self.args[0] if self.args else self.default_message


__all__ = [
    "GarmentStudioError",
    "ValidationError",
    "AuthError",
    "RateLimited",
    "ServiceUnavailable",
    "BadRequest",
    "MalformedResponse",
    "TryOnRejected",
    "WorkflowBusyError",
    "InvalidTransitionError",
    "UnknownSessionError",
]
