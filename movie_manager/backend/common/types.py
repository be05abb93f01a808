from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Optional



HttpMethod = Literal["GET", "POST", "DELETE"]
LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


@dataclass(frozen=True)
class RequestDescriptor:
    """One API call: method, templated path, query parameters and optional JSON body."""

    method: HttpMethod
    path: str
    params: Mapping[str, Any] = field(default_factory=dict)
    path_args: Mapping[str, Any] = field(default_factory=dict)
    json_body: Optional[Any] = None

    @property
    def has_body(self) -> bool:
        return self.json_body is not None
