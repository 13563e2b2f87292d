from .auth import MsalTokenProvider, TokenProvider
from .client import APIClient
from .config_types import ClientConfig
from .errors import (
    AuthTokenError,
    HTTPError,
    NetworkError,
    ProblemDetailsError,
    RestClientError,
)

__all__ = [
    "APIClient",
    "ClientConfig",
    "MsalTokenProvider",
    "TokenProvider",
    "RestClientError",
    "AuthTokenError",
    "HTTPError",
    "NetworkError",
    "ProblemDetailsError",
]
