"""Typed response models for the TMDb endpoints the client consumes.

Raw payloads never leave the information handlers: every response is decoded
into one of these models first, and a payload that lacks a required field is
reported as a :class:`ParseError` naming the operation and the field.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError, field_validator

from movie_manager.backend.common.errors import ParseError

_M = TypeVar("_M", bound=BaseModel)


class Movie(BaseModel):
    """A movie entry as returned in TMDb result lists."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    title: str
    poster_path: Optional[str] = None
    release_date: Optional[str] = None
    overview: Optional[str] = None

    @field_validator("poster_path", "release_date", "overview", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def release_year(self) -> Optional[str]:
        if self.release_date and len(self.release_date) >= 4:
            return self.release_date[:4]
        return None


class TMDbConfig(BaseModel):
    """Image configuration; replaced wholesale on every successful fetch."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    base_image_url: str = Field(alias="base_url")
    secure_base_image_url: str = Field(alias="secure_base_url")
    poster_sizes: Sequence[str] = Field(default_factory=tuple)
    profile_sizes: Sequence[str] = Field(default_factory=tuple)
    backdrop_sizes: Sequence[str] = Field(default_factory=tuple)
    still_sizes: Sequence[str] = Field(default_factory=tuple)

    @field_validator("poster_sizes", "profile_sizes", "backdrop_sizes", "still_sizes", mode="after")
    @classmethod
    def _freeze(cls, value: Sequence[str]) -> Sequence[str]:
        return tuple(value)


class RequestTokenResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    request_token: StrictStr


class SessionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    session_id: StrictStr


class AccountDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: StrictInt
    username: Optional[str] = None
    name: Optional[str] = None


class MovieList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: list[Movie]


class StatusResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status_code: StrictInt
    status_message: Optional[str] = None


class ConfigurationResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    images: TMDbConfig


def parse_model(model: Type[_M], payload: Any, *, operation: str, field: str) -> _M:
    """Validate ``payload`` as ``model`` or raise :class:`ParseError`."""

    if not isinstance(payload, dict):
        raise ParseError(operation, field, f"Could not parse {operation}: expected a JSON object")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ParseError(operation, field) from exc


__all__ = [
    "AccountDetails",
    "ConfigurationResponse",
    "Movie",
    "MovieList",
    "RequestTokenResponse",
    "SessionResponse",
    "StatusResponse",
    "TMDbConfig",
    "parse_model",
]
