from __future__ import annotations

import pytest

from chatcounter.counter import MessageCounter
from chatcounter.models.realtime import CounterState, Notification, NotificationKind


def _new_message(event_id: str = "E1") -> Notification:
    return Notification(kind=NotificationKind.NEW_MESSAGE, event_id=event_id)


def test_increments_after_baseline_are_added_to_it() -> None:
    counter = MessageCounter()
    counter.apply_baseline(7)

    for _ in range(4):
        counter.increment()

    assert counter.value == 11


@pytest.mark.parametrize("before_baseline", range(0, 6))
def test_baseline_and_live_increments_merge_in_any_order(before_baseline: int) -> None:
    counter = MessageCounter()
    total = 5

    for _ in range(before_baseline):
        counter.consume(_new_message())
    counter.apply_baseline(20)
    for _ in range(total - before_baseline):
        counter.consume(_new_message())

    assert counter.value == 20 + total
    assert counter.pending_increments == 0


def test_increments_before_baseline_are_held_back() -> None:
    counter = MessageCounter()
    seen: list[CounterState] = []
    counter.subscribe(seen.append)

    counter.increment()
    counter.increment()

    assert counter.value == 0
    assert counter.pending_increments == 2
    assert seen == []


def test_snapshot_ten_with_two_early_and_three_late_messages() -> None:
    counter = MessageCounter()

    counter.increment()
    counter.increment()
    counter.apply_baseline(10)
    assert counter.value == 12
    counter.increment()
    counter.increment()
    counter.increment()

    assert counter.value == 15


def test_failed_snapshot_degrades_to_live_only() -> None:
    counter = MessageCounter()

    counter.increment()
    counter.mark_baseline_unavailable()
    for _ in range(3):
        counter.increment()

    assert counter.value == 4
    assert counter.live_only
    assert not counter.baseline_applied


def test_late_baseline_after_live_only_keeps_every_increment() -> None:
    counter = MessageCounter()
    counter.increment()
    counter.mark_baseline_unavailable()
    counter.increment()

    assert counter.apply_baseline(10) is True

    assert counter.value == 12
    assert not counter.live_only


def test_second_baseline_is_ignored() -> None:
    counter = MessageCounter()
    assert counter.apply_baseline(3) is True
    counter.increment()

    assert counter.apply_baseline(100) is False
    assert counter.value == 4


@pytest.mark.parametrize("bad", [-1, True, 2.5])
def test_invalid_baseline_rejected(bad: object) -> None:
    counter = MessageCounter()
    with pytest.raises(ValueError):
        counter.apply_baseline(bad)  # type: ignore[arg-type]


def test_other_notifications_do_not_count() -> None:
    counter = MessageCounter()
    counter.apply_baseline(1)

    counter.consume(Notification(kind=NotificationKind.OTHER))

    assert counter.value == 1


def test_observers_receive_each_visible_change() -> None:
    counter = MessageCounter()
    seen: list[int] = []
    unsubscribe = counter.subscribe(lambda state: seen.append(state.value))

    counter.increment()
    counter.apply_baseline(5)
    counter.increment()
    unsubscribe()
    counter.increment()

    assert seen == [6, 7]
    assert counter.value == 8


def test_failing_observer_does_not_block_others() -> None:
    counter = MessageCounter()
    seen: list[int] = []

    def _broken(_state: CounterState) -> None:
        raise RuntimeError("render failed")

    counter.subscribe(_broken)
    counter.subscribe(lambda state: seen.append(state.value))
    counter.apply_baseline(2)

    assert seen == [2]


def test_degraded_flag_is_published_once() -> None:
    counter = MessageCounter()
    seen: list[CounterState] = []
    counter.subscribe(seen.append)

    counter.mark_degraded()
    counter.mark_degraded()

    assert counter.degraded
    assert len(seen) == 1
    assert seen[0].degraded


def test_closed_counter_ignores_every_mutation() -> None:
    counter = MessageCounter()
    counter.apply_baseline(3)
    counter.close()

    counter.increment()
    counter.mark_degraded()
    counter.mark_baseline_unavailable()

    assert counter.value == 3
    assert not counter.degraded
    assert counter.apply_baseline(50) is False


def test_close_before_baseline_ignores_late_snapshot() -> None:
    counter = MessageCounter()
    counter.increment()
    counter.close()

    assert counter.apply_baseline(10) is False
    assert counter.value == 0
