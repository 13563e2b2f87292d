from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from typing import Any

import httpx
from platformdirs import user_config_dir

from .auth import MsalTokenProvider
from .client import APIClient
from .config_types import ClientConfig

log = logging.getLogger(__name__)

APP_NAME = "restcore"
CONFIG_FILENAME = "config.toml"
ENV_ENDPOINT = "RESTCORE_ENDPOINT"
ENV_VERBOSE = "RESTCORE_VERBOSE"
ENV_DELAY_S = "RESTCORE_DELAY_S"

_WARNED_ENDPOINT_SCHEME = False


@dataclass
class AuthSettings:
    client_id: str = ""
    scopes: list[str] = field(default_factory=lambda: ["User.Read"])
    tenant: str = "common"
    redirect_uri: str | None = None


@dataclass
class ClientSettings:
    endpoint: str = "/api"
    verbose: bool = False
    delay_s: float = 0.0
    headers: dict[str, str] = field(default_factory=dict)
    auth: AuthSettings | None = None


def config_path() -> str:
    return f"{user_config_dir(APP_NAME)}/{CONFIG_FILENAME}"


def normalize_endpoint(raw: str | None) -> str:
    value = (raw or "").strip()
    if not value:
        return ""
    value = value.rstrip("/")
    lowered = value.lower()
    if lowered.startswith("http://") or lowered.startswith("https://") or value.startswith("/"):
        return value

    host = value.split("/", 1)[0]
    host = host.split(":", 1)[0].lower()
    if host in {"localhost", "127.0.0.1", "0.0.0.0"}:
        scheme = "http://"
    else:
        scheme = "https://"

    normalized = f"{scheme}{value}"
    _warn_missing_scheme(normalized)
    return normalized


def _warn_missing_scheme(normalized: str) -> None:
    global _WARNED_ENDPOINT_SCHEME
    if _WARNED_ENDPOINT_SCHEME:
        return
    log.warning("endpoint missing scheme, assuming %s", normalized)
    _WARNED_ENDPOINT_SCHEME = True


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def from_toml(data: dict[str, Any]) -> ClientSettings:
    settings = ClientSettings()
    endpoint = normalize_endpoint(str(data.get("endpoint") or ""))
    if endpoint:
        settings.endpoint = endpoint
    if "verbose" in data:
        settings.verbose = _parse_bool(data["verbose"])
    if "delay_s" in data:
        try:
            settings.delay_s = max(0.0, float(data["delay_s"]))
        except (TypeError, ValueError):
            log.warning("ignoring invalid delay_s %r", data["delay_s"])

    headers_raw = data.get("headers") or {}
    if isinstance(headers_raw, dict):
        settings.headers = {str(k): str(v) for k, v in headers_raw.items()}

    auth_raw = data.get("auth")
    if isinstance(auth_raw, dict):
        client_id = str(auth_raw.get("client_id") or "").strip()
        if client_id:
            scopes_raw = auth_raw.get("scopes")
            scopes = [str(s) for s in scopes_raw] if isinstance(scopes_raw, list) and scopes_raw else ["User.Read"]
            redirect_uri = auth_raw.get("redirect_uri")
            settings.auth = AuthSettings(
                client_id=client_id,
                scopes=scopes,
                tenant=str(auth_raw.get("tenant") or "common"),
                redirect_uri=redirect_uri if isinstance(redirect_uri, str) and redirect_uri else None,
            )
    return settings


def apply_env(settings: ClientSettings) -> ClientSettings:
    endpoint = normalize_endpoint(os.getenv(ENV_ENDPOINT))
    if endpoint:
        settings.endpoint = endpoint
    verbose = os.getenv(ENV_VERBOSE)
    if verbose is not None:
        settings.verbose = _parse_bool(verbose)
    delay = os.getenv(ENV_DELAY_S)
    if delay is not None:
        try:
            settings.delay_s = max(0.0, float(delay))
        except ValueError:
            log.warning("ignoring invalid %s=%r", ENV_DELAY_S, delay)
    return settings


def load_settings(path: str | None = None) -> ClientSettings:
    path = path or config_path()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
        settings = from_toml(data)
    except FileNotFoundError:
        settings = ClientSettings()
    return apply_env(settings)


def make_client(
        settings: ClientSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
) -> APIClient:
    auth_provider = None
    if settings.auth is not None and settings.auth.client_id:
        auth_provider = MsalTokenProvider(
            settings.auth.client_id,
            settings.auth.scopes,
            settings.auth.tenant,
            redirect_uri=settings.auth.redirect_uri,
        )
    return APIClient(
        settings.endpoint,
        ClientConfig(
            verbose=settings.verbose,
            headers=settings.headers,
            delay_s=settings.delay_s,
            auth_provider=auth_provider,
        ),
        transport=transport,
    )
