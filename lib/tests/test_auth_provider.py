from __future__ import annotations

import asyncio
import threading
import time

import httpx
import pytest

from restcore import APIClient, AuthTokenError, MsalTokenProvider
from restcore.errors import SilentAcquisitionError


class _FakeSession:
    def __init__(self, *, silent=None, interactive=None):
        self.silent = silent
        self.interactive = interactive
        self.init_calls = 0
        self.silent_calls = 0
        self.interactive_calls = 0

    def initialize(self) -> None:
        self.init_calls += 1

    def acquire_token_silent(self, scopes):
        self.silent_calls += 1
        assert self.init_calls > 0
        if isinstance(self.silent, Exception):
            raise self.silent
        return self.silent

    def acquire_token_interactive(self, scopes):
        self.interactive_calls += 1
        if isinstance(self.interactive, Exception):
            raise self.interactive
        return self.interactive


def _provider(session: _FakeSession) -> MsalTokenProvider:
    return MsalTokenProvider("client-id", ["api://x/.default"], session=session)


def test_silent_token_is_reused_without_prompt() -> None:
    session = _FakeSession(silent={"access_token": "cached"})
    provider = _provider(session)

    async def _twice():
        return await provider.get_access_token(), await provider.get_access_token()

    assert asyncio.run(_twice()) == ("cached", "cached")
    assert session.interactive_calls == 0
    assert session.init_calls == 1


def test_falls_back_to_interactive_when_silent_fails() -> None:
    session = _FakeSession(silent=SilentAcquisitionError("no cached account"), interactive={"access_token": "T"})

    assert asyncio.run(_provider(session).get_access_token()) == "T"
    assert session.silent_calls == 1
    assert session.interactive_calls == 1


def test_any_silent_exception_falls_back() -> None:
    session = _FakeSession(silent=ConnectionError("offline"), interactive={"access_token": "T"})

    assert asyncio.run(_provider(session).get_access_token()) == "T"


def test_interactive_failure_is_terminal() -> None:
    session = _FakeSession(silent=SilentAcquisitionError("miss"), interactive=RuntimeError("user closed popup"))

    with pytest.raises(AuthTokenError, match="Failed to get token from MSAL"):
        asyncio.run(_provider(session).get_access_token())
    assert session.interactive_calls == 1


def test_interactive_result_without_token_fails() -> None:
    session = _FakeSession(silent=SilentAcquisitionError("miss"), interactive={"id_token": "only"})

    with pytest.raises(AuthTokenError, match="Failed to get token from MSAL"):
        asyncio.run(_provider(session).get_access_token())


def test_provider_defaults() -> None:
    provider = MsalTokenProvider("client-id", redirect_uri="http://localhost:8400")

    assert provider.scopes == ("User.Read",)
    assert provider.tenant == "common"
    assert provider.session.authority == "https://login.microsoftonline.com/common"
    assert provider.session.redirect_uri == "http://localhost:8400"


def test_request_attaches_bearer_token_from_interactive_fallback() -> None:
    calls: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"ok": True})

    session = _FakeSession(silent=SilentAcquisitionError("miss"), interactive={"access_token": "T"})
    client = APIClient(
        "https://api.example.test",
        {"auth_provider": _provider(session)},
        transport=httpx.MockTransport(_handler),
    )

    assert asyncio.run(client.request("me", requires_auth=True)) == {"ok": True}
    assert calls[0].headers["authorization"] == "Bearer T"


def test_request_fails_without_network_call_when_auth_fails() -> None:
    calls: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    session = _FakeSession(silent=SilentAcquisitionError("miss"), interactive=RuntimeError("denied"))
    client = APIClient(
        "https://api.example.test",
        {"auth_provider": _provider(session)},
        transport=httpx.MockTransport(_handler),
    )

    with pytest.raises(AuthTokenError, match="Failed to get access token"):
        asyncio.run(client.request("me", requires_auth=True))
    assert calls == []


def test_auth_skipped_when_not_required_or_token_empty() -> None:
    calls: list[httpx.Request] = []

    class _EmptyProvider:
        async def get_access_token(self) -> str:
            return ""

    class _UnusedProvider:
        async def get_access_token(self) -> str:
            raise AssertionError("should not be asked")

    transport = httpx.MockTransport(lambda r: calls.append(r) or httpx.Response(200))

    asyncio.run(
        APIClient("https://api.example.test", {"auth_provider": _EmptyProvider()}, transport=transport)
        .request("me", requires_auth=True)
    )
    asyncio.run(
        APIClient("https://api.example.test", {"auth_provider": _UnusedProvider()}, transport=transport)
        .request("public")
    )

    assert len(calls) == 2
    assert all("authorization" not in c.headers for c in calls)


def test_requires_auth_without_provider_sends_anonymous_request() -> None:
    calls: list[httpx.Request] = []
    transport = httpx.MockTransport(lambda r: calls.append(r) or httpx.Response(200))

    asyncio.run(APIClient("https://api.example.test", transport=transport).request("me", requires_auth=True))

    assert "authorization" not in calls[0].headers


class _OverlapSession(_FakeSession):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._guard = threading.Lock()
        self.active = 0
        self.max_active = 0

    def acquire_token_silent(self, scopes):
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.01)
        try:
            return super().acquire_token_silent(scopes)
        finally:
            with self._guard:
                self.active -= 1


def test_concurrent_acquisitions_are_serialized() -> None:
    session = _OverlapSession(silent={"access_token": "cached"})
    provider = _provider(session)

    async def _many():
        return await asyncio.gather(*(provider.get_access_token() for _ in range(5)))

    assert asyncio.run(_many()) == ["cached"] * 5
    assert session.max_active == 1
    assert session.silent_calls == 5
    assert session.init_calls == 1


def test_initialize_warms_up_once() -> None:
    session = _FakeSession(silent={"access_token": "cached"})
    provider = _provider(session)

    async def _warm_then_get():
        await provider.initialize()
        await provider.initialize()
        return await provider.get_access_token()

    assert asyncio.run(_warm_then_get()) == "cached"
    assert session.init_calls == 1
