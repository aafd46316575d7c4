"""Event (chat room owner) model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from chatcounter.models._base import ApiBaseModel


class ChatEvent(ApiBaseModel):
    """An event the user belongs to; each event has one chat room."""

    id: str
    """Opaque event identifier (``EventId``)."""

    title: str | None = Field(default=None, validation_alias=AliasChoices("titre", "title"))
    status: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        text = str(value).strip() if value is not None else ""
        if not text:
            raise ValueError("event id must be non-empty")
        return text
