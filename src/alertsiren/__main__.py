"""Command-line entry point: ``python -m alertsiren``."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from collections.abc import Sequence

from alertsiren._audio import PygameNotifier
from alertsiren.config import CONFIG_DESCRIPTION, AlertConfig
from alertsiren.exceptions import AlertConfigError, AlertStateError
from alertsiren.monitor import AlertMonitor
from alertsiren.state.store import StateStore

_logger = logging.getLogger("alertsiren")

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="alertsiren",
        description="Poll an alert API and play audio cues when alerts start, repeat and clear.",
    )
    parser.add_argument("--config", default="config.json", help="Path to the configuration file")
    parser.add_argument("--state", default="state.json", help="Path to the state file")
    parser.add_argument(
        "--config-desc",
        action="store_true",
        help="Print a description of the configuration file and exit",
    )
    parser.add_argument("--once", action="store_true", help="Run a single poll cycle and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def setup_logging(config: AlertConfig, *, verbose: bool = False) -> None:
    """Log to stdout, and also to ``log_file_path`` when ``log_to_file`` is set."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.log_to_file:
        handlers.append(logging.FileHandler(config.log_file_path, encoding="utf-8"))
    level = logging.DEBUG if (config.debug or verbose) else logging.INFO
    logging.basicConfig(level=level, format=_LOG_FORMAT, handlers=handlers, force=True)


async def _run(monitor: AlertMonitor, *, once: bool) -> None:
    if once:
        _logger.info("%s", monitor.describe_state())
        await monitor.run_once()
        return

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Windows event loops do not support signal handlers.
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)
    await monitor.run_forever(stop)


async def _main(config: AlertConfig, state_path: str, *, once: bool) -> None:
    notifier = PygameNotifier()
    try:
        async with AlertMonitor(config, StateStore(state_path), notifier=notifier) as monitor:
            await _run(monitor, once=once)
    finally:
        notifier.close()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.config_desc:
        print(CONFIG_DESCRIPTION)
        return 0

    try:
        config = AlertConfig.from_file(args.config)
    except AlertConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    try:
        setup_logging(config, verbose=args.verbose)
        config.zone()
    except (AlertConfigError, OSError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    try:
        asyncio.run(_main(config, args.state, once=args.once))
    except AlertStateError as exc:
        _logger.critical("Cannot load state: %s", exc)
        return 2
    except KeyboardInterrupt:
        _logger.info("Interrupted")
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
