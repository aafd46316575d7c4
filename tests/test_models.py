from __future__ import annotations

import pytest
from pydantic import ValidationError

from chatcounter.models import ChatEvent, CounterState, MessageCount, Notification, NotificationKind, RoomKey, User


def test_room_keys_compare_by_both_ids() -> None:
    a = RoomKey(user_id="U1", event_id="E1")

    assert a == RoomKey(user_id="U1", event_id="E1")
    assert a != RoomKey(user_id="U1", event_id="E2")
    assert a != RoomKey(user_id="U2", event_id="E1")
    assert len({a, RoomKey(user_id="U1", event_id="E1")}) == 1


def test_room_key_rejects_blank_ids() -> None:
    with pytest.raises(ValidationError):
        RoomKey(user_id="", event_id="E1")


def test_room_key_join_payload() -> None:
    assert RoomKey(user_id=7, event_id=9).join_payload() == {"userId": "7", "eventId": "9"}


@pytest.mark.parametrize(
    ("data", "event_id"),
    [
        ({"eventId": "E1"}, "E1"),
        ({"event_id": 4}, "4"),
        ({"event": {"id": "E5"}}, "E5"),
        ({"eventId": True}, None),
        ({"content": "hello"}, None),
        (["not", "a", "dict"], None),
    ],
)
def test_notification_event_id_extraction(data: object, event_id: str | None) -> None:
    notification = Notification.from_socket("newMessage", data)

    assert notification.kind is NotificationKind.NEW_MESSAGE
    assert notification.event_id == event_id


def test_unknown_socket_event_is_other() -> None:
    assert Notification.from_socket("typing", {}).kind is NotificationKind.OTHER


def test_user_accepts_backend_field_names() -> None:
    user = User.model_validate({"id": 12, "nom": "Alice", "email": None})

    assert user.id == "12"
    assert user.name == "Alice"
    assert user.email is None
    assert user.raw["nom"] == "Alice"


def test_event_title_alias() -> None:
    assert ChatEvent.model_validate({"id": "E1", "titre": "Kickoff"}).title == "Kickoff"


def test_message_count_accepts_integral_float() -> None:
    assert MessageCount.model_validate({"count": 4.0}).count == 4


def test_counter_state_rejects_negative_values() -> None:
    with pytest.raises(ValidationError):
        CounterState(value=-1)
