"""Signed-in user model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from chatcounter.models._base import ApiBaseModel


class User(ApiBaseModel):
    """User profile returned by ``/users/me``.

    Only ``id`` is required; it is the ``UserIdentity`` used to derive
    room keys. The remaining profile fields are informational.
    """

    id: str
    """Opaque user identifier."""

    name: str | None = Field(default=None, validation_alias=AliasChoices("nom", "name"))
    email: str | None = None
    username: str | None = None
    role: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        text = str(value).strip() if value is not None else ""
        if not text:
            raise ValueError("user id must be non-empty")
        return text
