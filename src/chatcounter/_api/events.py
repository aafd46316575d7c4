"""Event membership endpoints.

Endpoints:
  - /events           (every event visible to the user)
  - /users/me/events  (events the user participates in)
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from chatcounter._api._common import get_checked
from chatcounter._constants import EVENTS_ENDPOINT, MY_EVENTS_ENDPOINT
from chatcounter._transport import Transport
from chatcounter.exceptions import MembershipUnavailableError
from chatcounter.models.event import ChatEvent

_logger = logging.getLogger(__name__)


def _parse_events(body: Any, endpoint: str) -> list[ChatEvent]:
    # Some deployments wrap lists as {"data": [...]}.
    if isinstance(body, dict) and isinstance(body.get("data"), list):
        body = body["data"]
    if not isinstance(body, list):
        raise MembershipUnavailableError(f"{endpoint} returned {type(body).__name__}, expected a list")

    events: list[ChatEvent] = []
    for item in body:
        if not isinstance(item, dict):
            _logger.debug("Skipping non-object event entry from %s: %r", endpoint, item)
            continue
        try:
            events.append(ChatEvent.model_validate(item))
        except ValidationError:
            _logger.debug("Skipping event entry without id from %s", endpoint, exc_info=True)
    return events


async def get_events(transport: Transport) -> list[ChatEvent]:
    """Fetch every event visible to the user."""
    body = await get_checked(transport, EVENTS_ENDPOINT, MembershipUnavailableError)
    return _parse_events(body, EVENTS_ENDPOINT)


async def get_my_events(transport: Transport) -> list[ChatEvent]:
    """Fetch the events the user participates in."""
    body = await get_checked(transport, MY_EVENTS_ENDPOINT, MembershipUnavailableError)
    return _parse_events(body, MY_EVENTS_ENDPOINT)


async def fetch_membership(transport: Transport, *, mine_only: bool = False) -> frozenset[str]:
    """Return the set of event ids the user belongs to."""
    events = await (get_my_events(transport) if mine_only else get_events(transport))
    membership = frozenset(event.id for event in events)
    _logger.debug("Resolved membership of %d events", len(membership))
    return membership
