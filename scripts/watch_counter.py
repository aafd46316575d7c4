#!/usr/bin/env python3
"""Watch the live chat message counter.

This script uses chatcounter to:
1) read configuration from CHATCOUNTER_* environment variables,
2) fetch the message count snapshot and join every event room,
3) print the counter each time it changes.

Use this to check a backend end-to-end without a frontend.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
import time
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from chatcounter import ChatCounterClient, ChatCounterConfig, ChatCounterError, CounterState  # noqa: E402

_LOG = logging.getLogger("watch_counter")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print the live chat message counter.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--user-only",
        action="store_true",
        help="Count the signed-in user's messages instead of all messages.",
    )
    parser.add_argument(
        "--my-events",
        action="store_true",
        help="Join rooms of /users/me/events instead of /events.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_state(state: CounterState) -> None:
    flags = []
    if not state.baseline_applied:
        flags.append("live-only" if state.live_only else "waiting-for-snapshot")
    if state.degraded:
        flags.append("degraded")
    suffix = f" ({', '.join(flags)})" if flags else ""
    stamp = time.strftime("%H:%M:%S")
    print(f"[watch] {stamp} messages={state.value}{suffix}", flush=True)


async def _run(config: ChatCounterConfig, duration: int) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    async with ChatCounterClient(config) as client:
        async with client.monitor() as monitor:
            monitor.counter.subscribe(_print_state)
            await monitor.wait_started()
            _print_state(monitor.counter.state)
            print(f"[watch] joined rooms: {len(monitor.subscriber.joined_rooms)}", flush=True)
            if duration > 0:
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(stop.wait(), duration)
            else:
                await stop.wait()


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, str] = {}
    if args.user_only:
        overrides["count_scope"] = "user"
    if args.my_events:
        overrides["membership_scope"] = "mine"

    try:
        config = ChatCounterConfig.from_env(**overrides)
        asyncio.run(_run(config, args.duration))
    except ChatCounterError as exc:
        print(f"[watch] Failed: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
