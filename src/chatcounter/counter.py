"""In-memory chat message counter.

This is the only component allowed to mutate the counter value. It merges
the baseline snapshot with live increments regardless of which arrives
first:

- before the baseline is known, increments are held in ``pending_increments``
- applying the baseline publishes ``baseline + pending_increments``
- after that, each increment is published immediately

If the baseline cannot be fetched the counter switches to live-only mode and
publishes the increments it has seen so far.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from chatcounter.models.realtime import CounterState, Notification, NotificationKind

_logger = logging.getLogger(__name__)

CounterObserver = Callable[[CounterState], None]


class MessageCounter:
    """Race-safe counter of chat messages with push-based observers."""

    def __init__(self) -> None:
        self._value = 0
        self._baseline_applied = False
        self._pending_increments = 0
        self._live_only = False
        self._degraded = False
        self._closed = False
        self._observers: list[CounterObserver] = []

    @property
    def value(self) -> int:
        """Currently visible count."""
        return self._value

    @property
    def baseline_applied(self) -> bool:
        return self._baseline_applied

    @property
    def pending_increments(self) -> int:
        """Increments received while waiting for the baseline."""
        return self._pending_increments

    @property
    def live_only(self) -> bool:
        return self._live_only

    @property
    def degraded(self) -> bool:
        return self._degraded

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def state(self) -> CounterState:
        return CounterState(
            value=self._value,
            baseline_applied=self._baseline_applied,
            live_only=self._live_only,
            degraded=self._degraded,
        )

    def subscribe(self, observer: CounterObserver) -> Callable[[], None]:
        """Register *observer* for counter changes.

        Returns a callable that removes the observer again.
        """
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def apply_baseline(self, baseline: int) -> bool:
        """Seed the visible value from a snapshot.

        Only the first baseline is applied. Returns ``True`` when it was.
        """
        if self._closed:
            _logger.debug("Ignoring baseline=%s after close", baseline)
            return False
        if self._baseline_applied:
            _logger.debug("Ignoring baseline=%s, already seeded", baseline)
            return False
        if isinstance(baseline, bool) or not isinstance(baseline, int) or baseline < 0:
            raise ValueError(f"baseline must be a non-negative integer, got {baseline!r}")

        # In live-only mode the visible value already holds every increment.
        received = self._value if self._live_only else self._pending_increments
        self._value = baseline + received
        self._pending_increments = 0
        self._baseline_applied = True
        self._live_only = False
        _logger.debug("Baseline applied baseline=%s received=%s value=%s", baseline, received, self._value)
        self._notify()
        return True

    def mark_baseline_unavailable(self) -> None:
        """Degrade to counting live increments only."""
        if self._closed or self._baseline_applied or self._live_only:
            return
        self._live_only = True
        self._value += self._pending_increments
        self._pending_increments = 0
        _logger.debug("Counter switched to live-only value=%s", self._value)
        self._notify()

    def increment(self) -> None:
        """Count one new message."""
        if self._closed:
            return
        if not (self._baseline_applied or self._live_only):
            self._pending_increments += 1
            return
        self._value += 1
        self._notify()

    def consume(self, notification: Notification) -> None:
        """Apply an inbound push notification."""
        if notification.kind is NotificationKind.NEW_MESSAGE:
            self.increment()

    def mark_degraded(self) -> None:
        """Flag the counter as no longer receiving live updates."""
        if self._closed or self._degraded:
            return
        self._degraded = True
        self._notify()

    def close(self) -> None:
        """Freeze the counter. Later mutations are ignored."""
        self._closed = True
        self._observers.clear()

    def _notify(self) -> None:
        state = self.state
        for observer in list(self._observers):
            try:
                observer(state)
            except Exception:
                _logger.warning("Counter observer %r failed", observer, exc_info=True)
