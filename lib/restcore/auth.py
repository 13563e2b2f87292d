from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Protocol, Sequence
from urllib.parse import urlsplit

import msal

from .errors import AuthTokenError, SilentAcquisitionError

log = logging.getLogger(__name__)

AUTHORITY_HOST = "https://login.microsoftonline.com"


class TokenProvider(Protocol):
    async def get_access_token(self) -> str: ...


class AuthSession(Protocol):
    """Capabilities of the underlying auth library session."""

    def initialize(self) -> None: ...

    def acquire_token_silent(self, scopes: Sequence[str]) -> Mapping[str, Any]: ...

    def acquire_token_interactive(self, scopes: Sequence[str]) -> Mapping[str, Any]: ...


class MsalSession:
    """AuthSession backed by an MSAL public client application."""

    def __init__(self, client_id: str, *, tenant: str = "common", redirect_uri: str | None = None):
        self.client_id = client_id
        self.authority = f"{AUTHORITY_HOST}/{tenant}"
        self.redirect_uri = redirect_uri
        self._app: msal.PublicClientApplication | None = None

    def initialize(self) -> None:
        if self._app is None:
            self._app = msal.PublicClientApplication(self.client_id, authority=self.authority)

    def acquire_token_silent(self, scopes: Sequence[str]) -> Mapping[str, Any]:
        app = self._require_app()
        accounts = app.get_accounts()
        if not accounts:
            raise SilentAcquisitionError("no cached account")
        result = app.acquire_token_silent(list(scopes), account=accounts[0])
        if not result:
            raise SilentAcquisitionError("no cached token")
        return _check_result(result, SilentAcquisitionError)

    def acquire_token_interactive(self, scopes: Sequence[str]) -> Mapping[str, Any]:
        app = self._require_app()
        port = urlsplit(self.redirect_uri).port if self.redirect_uri else None
        result = app.acquire_token_interactive(list(scopes), port=port)
        return _check_result(result, AuthTokenError)

    def _require_app(self) -> msal.PublicClientApplication:
        if self._app is None:
            raise AuthTokenError("MSAL session not initialized")
        return self._app


def _check_result(result: Mapping[str, Any], exc_type: type[AuthTokenError]) -> Mapping[str, Any]:
    if "error" in result:
        raise exc_type(
            str(result.get("error_description") or result["error"]),
            error=result.get("error"),
            error_description=result.get("error_description"),
        )
    return result


class MsalTokenProvider:
    """Token provider trying the MSAL cache first, then an interactive login.

    Acquisitions are serialized per instance; MSAL's blocking calls run in
    a worker thread.
    """

    def __init__(
            self,
            client_id: str,
            scopes: Sequence[str] = ("User.Read",),
            tenant: str = "common",
            *,
            redirect_uri: str | None = None,
            session: AuthSession | None = None,
    ):
        self.client_id = client_id
        self.scopes = tuple(scopes)
        self.tenant = tenant
        self.redirect_uri = redirect_uri
        self.session = session or MsalSession(client_id, tenant=tenant, redirect_uri=redirect_uri)
        self._initialized = False
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize the auth session ahead of the first token request."""
        async with self._lock:
            await self._ensure_initialized()

    async def _ensure_initialized(self) -> None:
        # caller holds self._lock
        if not self._initialized:
            await asyncio.to_thread(self.session.initialize)
            self._initialized = True

    async def get_access_token(self) -> str:
        async with self._lock:
            await self._ensure_initialized()

            try:
                result = await asyncio.to_thread(self.session.acquire_token_silent, self.scopes)
            except Exception as e:
                log.debug("silent token acquisition failed, falling back to interactive: %s", e)
                try:
                    result = await asyncio.to_thread(self.session.acquire_token_interactive, self.scopes)
                except Exception as e2:
                    raise AuthTokenError("Failed to get token from MSAL") from e2

        token = result.get("access_token") if result else None
        if not token:
            raise AuthTokenError("Failed to get token from MSAL")
        return str(token)
