"""Command line entry point: ping a host repeatedly."""

from __future__ import annotations

import argparse
import logging
import signal
import threading

from rich.console import Console

from sonar import info_query
from sonar.logger import TRACE, level_from_verbosity, register
from sonar.pinger import STOP_SIGNAL, PingError, Pinger, PingReply

VERSION = "r6.8003d6d"

log = logging.getLogger("sonar")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse the command line."""
    parser = argparse.ArgumentParser(prog="sonar", description="Modern ping")
    parser.add_argument("--version", action="version", version=f"sonar {VERSION}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="increase verbosity (-v: warnings, -vv: info, -vvv: debug, -vvvv: trace)",
    )
    parser.add_argument("ip", help="ip address to ping")
    parser.add_argument("-c", "--count", type=int, default=None, help="amount to attempt pinging")
    parser.add_argument(
        "-i",
        "--interval",
        type=float,
        default=1.0,
        help="seconds to wait between sending packets",
    )
    parser.add_argument(
        "-x",
        "--extra",
        action="store_true",
        default=False,
        help="enable querying for extra information (uses IP2Location)",
    )
    args = parser.parse_args(argv)
    if args.count is not None and args.count < 0:
        parser.error("count cannot be negative")
    if args.interval < 0:
        parser.error("interval cannot be negative")
    return args


def format_reply(reply: PingReply) -> str:
    """Render one echo reply as a display line."""
    millis = round(reply.elapsed * 100000.0) / 100.0
    return f"[{reply.sequence}] | {reply.from_addr} -> {reply.dest_addr} | {millis:.2f} ms"


def main(argv: list[str] | None = None) -> int:
    """Run the ping loop and return the exit status."""
    args = parse_args(argv)
    register(level_from_verbosity(args.verbose))
    console = Console(highlight=False)

    stop_event = threading.Event()

    def _on_interrupt(_signum: int, _frame: object) -> None:
        print()
        stop_event.set()

    previous = None
    try:
        previous = signal.signal(signal.SIGINT, _on_interrupt)
    except (ValueError, OSError) as exc:
        log.error("could not set interrupt handler: %s", exc)

    try:
        if args.extra:
            try:
                info_query.whois(args.ip, stop_event)
            except info_query.InfoQueryError:
                log.error("querying for extra info failed")
            # An interrupt during the lookup only cancels the lookup.
            stop_event.clear()

        log.log(TRACE, "Pinger.__init__")
        try:
            pinger = Pinger(args.ip)
        except PingError as exc:
            log.error("%s", exc)
            return 1

        log.log(TRACE, "Pinger.init_socket")
        try:
            pinger.init_socket()
        except PingError as exc:
            log.error("could not init socket: %s", exc)
            return 1

        def ping_once() -> bool:
            if stop_event.wait(args.interval):
                return False
            log.log(TRACE, "Pinger.ping")
            try:
                reply = pinger.ping(stop_event)
            except PingError as exc:
                return str(exc) != STOP_SIGNAL
            console.print(format_reply(reply), style="rgb(0,255,0)", markup=False)
            return True

        times = f" {args.count} times" if args.count is not None else ""
        console.print(f"Pinging {args.ip} ({pinger.dest()}){times}", markup=False)

        with pinger:
            if args.count is not None:
                for _ in range(args.count):
                    if not ping_once():
                        break
            else:
                while ping_once():
                    pass
        return 0
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)