"""Sending ICMP echo requests over a raw socket and waiting for replies."""

from __future__ import annotations

import ipaddress
import logging
import random
import socket
import threading
import time
from dataclasses import dataclass

from sonar.logger import TRACE
from sonar.netutil import DnsLookupError, dns_lookup
from sonar.packet import IcmpPacket, Ipv4Packet, PacketError

log = logging.getLogger(__name__)

STOP_SIGNAL = "stop signal"
DEFAULT_TIMEOUT = 2.0
PAYLOAD_SIZE = 64
RECV_SIZE = 2048
TTL = 255

IpAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


class PingError(Exception):
    """Raised when a ping cannot be sent or is not answered."""


@dataclass(frozen=True)
class PingReply:
    """A matched echo reply; ``elapsed`` is the round trip in seconds."""

    elapsed: float
    sequence: int
    from_addr: ipaddress.IPv4Address
    dest_addr: ipaddress.IPv4Address


def _resolve(addr: str) -> IpAddress:
    try:
        return ipaddress.ip_address(addr)
    except ValueError as exc:
        try:
            return dns_lookup(addr)
        except DnsLookupError:
            raise PingError(str(exc)) from exc


class Pinger:
    """Sends echo requests to one destination and waits for the matching reply."""

    def __init__(self, addr: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        log.debug("timeout_secs=%s", timeout)
        self.timeout = timeout
        self._addr = _resolve(addr)
        self._sequence = 1
        self._socket: socket.socket | None = None
        self._rand = random.Random()

    def dest(self) -> str:
        """Return the resolved destination address as text."""
        return str(self._addr)

    def init_socket(self) -> None:
        """Open the raw ICMP socket used for pinging."""
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP)
        except OSError as exc:
            log.error("could not open socket: %s", exc)
            raise PingError("could not open socket") from exc
        try:
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL, TTL)
        except OSError as exc:
            sock.close()
            log.error("could not set socket ttl: %s", exc)
            raise PingError("could not set socket ttl") from exc
        log.log(TRACE, "ttl=%d", TTL)
        self.close()
        self._socket = sock

    def close(self) -> None:
        """Close the socket if one is open."""
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    def __enter__(self) -> Pinger:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def ping(self, stop_event: threading.Event | None = None) -> PingReply:
        """Send one echo request and wait for its reply.

        Raises :class:`PingError`; its message is ``"stop signal"`` when
        ``stop_event`` was set while waiting.
        """
        sock = self._socket
        if sock is None:
            raise PingError("invalid socket")

        packet = IcmpPacket(
            type=8,
            code=0,
            checksum=0,
            ident=self._rand.getrandbits(16),
            sequence=self._sequence,
            payload=self._rand.randbytes(PAYLOAD_SIZE),
        )
        packet.checksum = packet.calculate_checksum()
        log.log(
            TRACE,
            "checksum=%d ident=%d sequence=%d",
            packet.checksum,
            packet.ident,
            packet.sequence,
        )
        data = packet.encode()

        start = time.monotonic()
        try:
            sent = sock.sendto(data, (str(self._addr), 0))
        except OSError as exc:
            log.error("could not send packet: %s", exc)
            raise PingError("could not send packet") from exc
        log.debug("bytes_sent=%d", sent)
        self._sequence = (self._sequence + 1) & 0xFFFF

        elapsed = 0.0
        while True:
            if stop_event is not None and stop_event.is_set():
                raise PingError(STOP_SIGNAL)

            remaining = self.timeout - elapsed
            if remaining <= 0:
                raise PingError("timeout")
            try:
                sock.settimeout(remaining)
            except OSError as exc:
                log.error("could not set socket read timeout: %s", exc)
                raise PingError("could not set socket read timeout") from exc

            try:
                buffer = sock.recv(RECV_SIZE)
            except OSError as exc:
                log.error("could not read from socket: %s", exc)
                raise PingError("could not read from socket") from exc
            log.debug("bytes_recv=%d", len(buffer))

            try:
                datagram = Ipv4Packet.decode(buffer)
            except PacketError as exc:
                log.error("could not decode packet: %s", exc)
                raise PingError("could not decode packet") from exc

            try:
                reply = IcmpPacket.decode(datagram.data)
            except PacketError:
                elapsed = time.monotonic() - start
                continue

            if reply.ident == packet.ident and reply.sequence == packet.sequence:
                return PingReply(
                    elapsed=time.monotonic() - start,
                    sequence=reply.sequence,
                    from_addr=datagram.from_addr,
                    dest_addr=datagram.dest_addr,
                )

            elapsed = time.monotonic() - start
            if elapsed >= self.timeout:
                raise PingError("timeout")