"""Current user endpoint (the session source)."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from chatcounter._api._common import get_checked
from chatcounter._constants import CURRENT_USER_ENDPOINT
from chatcounter._transport import Transport
from chatcounter.exceptions import SessionUnavailableError
from chatcounter.models.user import User

_logger = logging.getLogger(__name__)


async def get_current_user(transport: Transport) -> User:
    """Return the signed-in user.

    Raises
    ------
    SessionUnavailableError
        Not authenticated, or the profile has no usable ``id``.
    """
    body = await get_checked(transport, CURRENT_USER_ENDPOINT, SessionUnavailableError)
    if not isinstance(body, dict) or not body:
        raise SessionUnavailableError(f"{CURRENT_USER_ENDPOINT} returned no user")
    try:
        user = User.model_validate(body)
    except ValidationError as exc:
        raise SessionUnavailableError(f"{CURRENT_USER_ENDPOINT} returned an invalid user: {exc}") from exc
    _logger.debug("Resolved current user id=%s", user.id)
    return user
