from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Mapping

import httpx

from .config_types import ClientConfig
from .errors import AuthTokenError, HTTPError, NetworkError, ProblemDetailsError
from .problem import parse_problem_details

log = logging.getLogger(__name__)

_DEFAULT_CONFIG = ClientConfig()


class APIClient:
    """Generic REST client; every call goes through :meth:`request`.

    Subclasses name endpoints and parse payloads, e.g.::

        class FruitAPI(APIClient):
            async def get_fruit(self, name: str):
                return await self.request(f"fruit/{name}")
    """

    def __init__(
            self,
            endpoint: str,
            config: ClientConfig | Mapping[str, Any] | None = None,
            *,
            transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.endpoint = endpoint[:-1] if endpoint.endswith("/") else endpoint
        self.config = _DEFAULT_CONFIG.merged(config)
        self._transport = transport

        self._debug("API client created for endpoint %s", self.endpoint)
        if self.config.auth_provider is not None:
            self._debug("API client: auth enabled with %s", type(self.config.auth_provider).__name__)

    async def request(
            self,
            path: str,
            method: str = "GET",
            payload: Any = None,
            requires_auth: bool = False,
            extra_headers: Mapping[str, str] | None = None,
    ) -> Any:
        url = f"{self.endpoint}/{path}"
        self._debug("API request: %s %s", method, url)

        headers: dict[str, str] = {}
        body: Any = None
        if payload is not None:
            try:
                body = json.dumps(payload)
                headers["Content-Type"] = "application/json"
            except (TypeError, ValueError):
                # Not JSON serializable, send as-is
                if isinstance(payload, bytearray):
                    body = bytes(payload)
                elif isinstance(payload, (str, bytes)):
                    body = payload
                else:
                    body = str(payload)

        if requires_auth and self.config.auth_provider is not None:
            self._debug("API client: getting access token")
            try:
                token = await self.config.auth_provider.get_access_token()
            except Exception as e:
                raise AuthTokenError("Failed to get access token") from e
            if token:
                headers["Authorization"] = f"Bearer {token}"

        headers = {**headers, **(extra_headers or {}), **self.config.headers}

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=None) as client:
                r = await client.request(method, url, content=body, headers=headers)
        except httpx.RequestError as e:
            raise NetworkError(str(e)) from e

        self._debug("API response: %s %s", r.status_code, r.reason_phrase)

        if self.config.delay_s > 0:
            await asyncio.sleep(self.config.delay_s)

        if not self.config.success(r):
            raise self._error_for(path, r)

        content_type = r.headers.get("content-type") or ""
        if "application/json" in content_type:
            return r.json()
        return r.text

    def _error_for(self, path: str, r: httpx.Response) -> Exception:
        try:
            data = r.json()
        except ValueError:
            return HTTPError(path, r.status_code, r.reason_phrase, r.text[:1000])

        problem = parse_problem_details(data)
        if problem is not None:
            return ProblemDetailsError(problem, r.status_code)
        # JSON without a title is still a plain HTTP error
        return HTTPError(path, r.status_code, r.reason_phrase, data)

    def _debug(self, msg: str, *args: Any) -> None:
        if self.config.verbose:
            log.debug(msg, *args)
