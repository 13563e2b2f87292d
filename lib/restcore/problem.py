from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

_KNOWN_FIELDS = ("title", "detail", "instance", "status", "type")


@dataclass(frozen=True)
class ProblemDetails:
    title: str
    detail: str | None = None
    instance: str | None = None
    status: int | None = None
    type: str | None = None
    extensions: dict[str, Any] = field(default_factory=dict)

    def message(self) -> str:
        return f"{self.title} ({self.instance or ''}): {self.detail or ''}"


def parse_problem_details(data: Any) -> ProblemDetails | None:
    """Return a ProblemDetails when ``data`` is a JSON object carrying a ``title``."""
    if not isinstance(data, dict) or "title" not in data:
        return None
    status = data.get("status")
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None
    return ProblemDetails(
        title=str(data.get("title")),
        detail=_opt_str(data.get("detail")),
        instance=_opt_str(data.get("instance")),
        status=status,
        type=_opt_str(data.get("type")),
        extensions={k: v for k, v in data.items() if k not in _KNOWN_FIELDS},
    )


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
