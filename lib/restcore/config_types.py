from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Mapping

import httpx

if TYPE_CHECKING:
    from .auth import TokenProvider


def default_success(response: httpx.Response) -> bool:
    return response.is_success


@dataclass(frozen=True)
class ClientConfig:
    verbose: bool = False
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    delay_s: float = 0.0
    auth_provider: TokenProvider | None = None
    success: Callable[[httpx.Response], bool] = default_success

    def merged(self, overrides: ClientConfig | Mapping[str, Any] | None) -> ClientConfig:
        """Shallow merge: every key present in ``overrides`` replaces ours."""
        if overrides is None:
            return self
        if isinstance(overrides, ClientConfig):
            values = {f.name: getattr(overrides, f.name) for f in fields(overrides)}
        else:
            values = dict(overrides)
        if "headers" in values:
            values["headers"] = MappingProxyType(dict(values["headers"] or {}))
        return replace(self, **values)
