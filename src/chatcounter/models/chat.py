"""Chat message count snapshot model."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from chatcounter.models._base import ApiBaseModel


class MessageCount(ApiBaseModel):
    """Response of ``/chat/count``: ``{"count": <int>}``."""

    count: int = Field(ge=0)
    """Messages known to the backend at request time."""

    @field_validator("count", mode="before")
    @classmethod
    def _strict_count(cls, value: Any) -> Any:
        # JSON booleans, numeric strings and fractional numbers are malformed counts.
        if isinstance(value, bool):
            raise ValueError("count must be an integer, got a boolean")
        if isinstance(value, str):
            raise ValueError(f"count must be an integer, got a string {value!r}")
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError(f"count must be an integer, got {value}")
            return int(value)
        return value
