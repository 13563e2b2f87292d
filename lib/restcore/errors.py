from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .problem import ProblemDetails


class RestClientError(Exception):
    """Base client error."""


class NetworkError(RestClientError):
    """Transport/network layer error."""


class AuthTokenError(RestClientError):
    def __init__(
            self,
            message: str,
            *,
            error: str | None = None,
            error_description: str | None = None,
    ):
        super().__init__(message)
        self.error = error
        self.error_description = error_description


class SilentAcquisitionError(AuthTokenError):
    """No token could be acquired without user interaction."""


class HTTPError(RestClientError):
    def __init__(self, path: str, status_code: int, status_text: str, body: Any = None):
        super().__init__(f"API error /{path} {status_code} {status_text}")
        self.path = path
        self.status_code = status_code
        self.status_text = status_text
        self.body = body


class ProblemDetailsError(RestClientError):
    """RFC 7807 / 9457 error returned by the API."""

    def __init__(self, problem: ProblemDetails, status_code: int):
        super().__init__(problem.message())
        self.problem = problem
        self.status_code = status_code
        self.title = problem.title
        self.instance = problem.instance
        self.detail = problem.detail
