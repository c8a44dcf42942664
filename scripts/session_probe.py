#!/usr/bin/env python3
"""Passive probe for a pysynced peer.

Connects to a WebSocket peer, optionally binds one synced key and requests
its snapshot, then logs every frame until interrupted. Use this to check
which control frames and patches a server actually emits.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pysynced import LoggingNotifier, SessionConfig, SyncedState, create_session  # noqa: E402

_LOG = logging.getLogger("session_probe")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("url", nargs="?", help="WebSocket URL (defaults to SYNCED_URL)")
    parser.add_argument("--label", default=None, help="Peer label used in log messages")
    parser.add_argument("--key", default=None, help="Synced key to bind (e.g. 'counter')")
    parser.add_argument("--initial", default="{}", help="Initial JSON value for --key")
    parser.add_argument("--fetch", action="store_true", help="Send _GET:<key> once connected")
    parser.add_argument("--ws-auth", action="store_true", help="Answer _REQUEST_USER_SESSION")
    parser.add_argument("--download-dir", default=None, help="Directory for _DOWNLOAD payloads")
    parser.add_argument("--duration", type=float, default=0.0, help="Stop after N seconds (0 = until Ctrl+C)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    overrides: dict[str, Any] = {"auto_connect": False, "ws_auth": args.ws_auth}
    if args.url:
        overrides["url"] = args.url
    if args.label:
        overrides["label"] = args.label
    if args.download_dir:
        overrides["download_dir"] = args.download_dir
    config = SessionConfig.from_env(**overrides)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:  # pragma: no cover - Windows
            pass

    session = await create_session(
        config,
        notifier=LoggingNotifier(_LOG),
        on_connection_change=lambda up: _LOG.info("connection %s", "up" if up else "down"),
    )
    async with session:
        synced: SyncedState | None = None
        if args.key:
            synced = SyncedState(session, args.key, json.loads(args.initial))
            synced.subscribe(lambda state: _LOG.info("%s = %s", args.key, json.dumps(state, default=str)))
            synced.activate()

        session.register_binary_handler(lambda payload: _LOG.info("binary frame: %d bytes", len(payload)))
        await session.connect()
        if synced is not None and args.fetch:
            await synced.fetch_remote_state()

        try:
            if args.duration > 0:
                await asyncio.wait_for(stop.wait(), timeout=args.duration)
            else:
                await stop.wait()
        except TimeoutError:
            pass

        if synced is not None:
            synced.deactivate()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
