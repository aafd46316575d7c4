"""Chat message count endpoint (the counter snapshot).

Endpoints:
  - /chat/count              (every message known to the backend)
  - /chat/count?userId=<id>  (messages of one user)
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from chatcounter._api._common import get_checked
from chatcounter._constants import CHAT_COUNT_ENDPOINT
from chatcounter._transport import Transport
from chatcounter.exceptions import SnapshotUnavailableError
from chatcounter.models.chat import MessageCount

_logger = logging.getLogger(__name__)


async def fetch_message_count(
    transport: Transport,
    *,
    user_id: str | None = None,
) -> MessageCount:
    """Fetch the message count snapshot.

    Single request, no retry.

    Raises
    ------
    SnapshotUnavailableError
        The call failed or returned a malformed body.
    """
    params = {"userId": user_id} if user_id else None
    body = await get_checked(transport, CHAT_COUNT_ENDPOINT, SnapshotUnavailableError, params=params)
    if not isinstance(body, dict):
        raise SnapshotUnavailableError(f"{CHAT_COUNT_ENDPOINT} returned {type(body).__name__}, expected an object")
    try:
        snapshot = MessageCount.model_validate(body)
    except ValidationError as exc:
        raise SnapshotUnavailableError(f"{CHAT_COUNT_ENDPOINT} returned a malformed count: {exc}") from exc
    _logger.debug("Message count snapshot=%s user_id=%s", snapshot.count, user_id)
    return snapshot


async def fetch_baseline(transport: Transport, *, user_id: str | None = None) -> int:
    """Return the baseline message count as a non-negative integer."""
    snapshot = await fetch_message_count(transport, user_id=user_id)
    return snapshot.count
