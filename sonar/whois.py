"""Looking up the network name of an address over the whois protocol."""

from __future__ import annotations

import contextlib
import ipaddress
import logging
import socket
import threading
import time
from dataclasses import dataclass

from sonar.logger import TRACE
from sonar.netutil import DnsLookupError, dns_lookup

log = logging.getLogger(__name__)

IANA_SERVER = "whois.iana.org"
WHOIS_PORT = 43
DEFAULT_TIMEOUT = 2.0
RECV_SIZE = 2048
TTL = 255

IpAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


class WhoIsError(Exception):
    """Raised when a whois query fails."""


@dataclass
class WhoIsResponse:
    """The fields taken from a whois answer."""

    netname: str | None = None


def parse_whois(text: str) -> WhoIsResponse:
    """Pick the first ``netname`` line out of a whois answer."""
    response = WhoIsResponse()
    for line in text.splitlines():
        if response.netname is None and line.lower().startswith("netname"):
            words = line.split()
            response.netname = words[-1] if words else "Unknown"
    return response


def _resolve(addr: str) -> IpAddress:
    try:
        return ipaddress.ip_address(addr)
    except ValueError as exc:
        try:
            return dns_lookup(addr)
        except DnsLookupError:
            raise WhoIsError(str(exc)) from exc


class WhoIs:
    """Queries IANA for the responsible whois server, then asks that server."""

    def __init__(self, addr: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.addr = _resolve(addr)
        self.timeout = timeout

    def get_whois(self, stop_event: threading.Event | None = None) -> WhoIsResponse:
        """Return the parsed whois answer for the address."""
        first = self.send_query(IANA_SERVER, stop_event)
        server = next((word for word in first.split() if word.startswith("whois.")), None)
        if server is None:
            raise WhoIsError("invalid response")
        return parse_whois(self.send_query(server, stop_event))

    def send_query(
        self, server: str, stop_event: threading.Event | None = None
    ) -> str:
        """Send the address to ``server`` and return its whole answer as text."""
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
        except OSError as exc:
            log.error("could not open socket: %s", exc)
            raise WhoIsError("could not open socket") from exc

        with contextlib.closing(sock):
            try:
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL, TTL)
            except OSError as exc:
                log.error("could not set socket ttl: %s", exc)
                raise WhoIsError("could not set socket ttl") from exc
            log.log(TRACE, "ttl=%d", TTL)

            try:
                server_addr = dns_lookup(server)
            except DnsLookupError as exc:
                raise WhoIsError(str(exc)) from exc

            try:
                sock.settimeout(self.timeout)
                sock.connect((str(server_addr), WHOIS_PORT))
            except OSError as exc:
                log.error(
                    "could not connect: %s addr=%s server=%s", exc, self.addr, server
                )
                raise WhoIsError("could not connect") from exc

            start = time.monotonic()
            query = f"{self.addr}\r\n".encode()
            try:
                sock.sendall(query)
            except OSError as exc:
                log.error("could not send query: %s", exc)
                raise WhoIsError("could not send query") from exc
            log.debug("bytes_sent=%d", len(query))

            chunks: list[bytes] = []
            elapsed = 0.0
            while True:
                if stop_event is not None and stop_event.is_set():
                    raise WhoIsError("stop signal")

                try:
                    sock.settimeout(self.timeout - elapsed)
                except (OSError, ValueError) as exc:
                    log.error("could not set socket read timeout: %s", exc)
                    raise WhoIsError("could not set socket read timeout") from exc

                try:
                    data = sock.recv(RECV_SIZE)
                except OSError as exc:
                    log.error("could not read from socket: %s", exc)
                    raise WhoIsError("could not read from socket") from exc
                log.debug("bytes_recv=%d", len(data))

                elapsed = time.monotonic() - start
                if elapsed >= self.timeout:
                    raise WhoIsError("timeout")

                if not data:
                    break
                chunks.append(data)

        try:
            return b"".join(chunks).decode("utf-8")
        except UnicodeDecodeError as exc:
            log.error("invalid utf8: %s", exc)
            raise WhoIsError("invalid utf8") from exc