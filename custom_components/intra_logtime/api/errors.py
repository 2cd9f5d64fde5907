"""Exception hierarchy for 42 Intra API communication."""
from __future__ import annotations


class IntraApiError(Exception):
    """Base class for every failure talking to the 42 Intra API."""

    def __init__(self, message: str = "", status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class AuthenticationError(IntraApiError):
    """The OAuth token exchange failed. The user has to re-authenticate."""


class UnauthorizedError(IntraApiError):
    """HTTP 401: the access token is invalid or expired."""


class ForbiddenError(IntraApiError):
    """HTTP 403: the token lacks the scope needed for this resource."""


class NotFoundError(IntraApiError):
    """HTTP 404: no such login or resource."""


class TransientNetworkError(IntraApiError):
    """Timeout, connection failure or 5xx. Retried before it surfaces."""


class ApiResponseError(IntraApiError):
    """Exception raised when API returns an error or unexpected response."""

    def __init__(self, error_json: dict, status: int | None = None) -> None:
        self.error_json = error_json
        super().__init__(f"API Error: {error_json}", status)
