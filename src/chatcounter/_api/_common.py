"""Shared helpers for backend endpoint modules.

It is internal to chatcounter and may change at any time.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from chatcounter._transport import Transport
from chatcounter.exceptions import ChatCounterError, ChatCounterTransportError


async def get_checked(
    transport: Transport,
    endpoint: str,
    error_cls: type[ChatCounterError],
    *,
    params: Mapping[str, str] | None = None,
) -> Any:
    """GET *endpoint*, mapping transport failures to *error_cls*."""
    try:
        return await transport.get_json(endpoint, params)
    except ChatCounterTransportError as exc:
        raise error_cls(f"{endpoint} failed: {exc}") from exc
