"""ICMP echo and IPv4 packet encoding and decoding."""

from __future__ import annotations

import enum
import ipaddress
import logging
import struct
from dataclasses import dataclass, field

from sonar.logger import TRACE

log = logging.getLogger(__name__)

_ICMP_HEADER = struct.Struct("!BBHHH")
_IPV4_HEADER = struct.Struct("!BBHHHBBH4s4s")


class PacketError(ValueError):
    """Raised when a packet cannot be decoded or encoded."""


def sum_big_endian_words(data: bytes) -> int:
    """Sum ``data`` as big-endian 16-bit words, padding an odd tail with zero."""
    if len(data) % 2:
        data = bytes(data) + b"\x00"
    return sum(word for (word,) in struct.iter_unpack("!H", data))


@dataclass
class IcmpPacket:
    """An ICMP echo message."""

    type: int
    code: int
    checksum: int
    ident: int
    sequence: int
    payload: bytes = field(default=b"")

    def calculate_checksum(self) -> int:
        """Return the internet checksum of the message with a zero checksum field."""
        total = sum_big_endian_words(self.to_bytes(with_checksum=False))
        while total >> 16:
            total = (total >> 16) + (total & 0xFFFF)
        return ~total & 0xFFFF

    def to_bytes(self, with_checksum: bool) -> bytes:
        """Serialise the message, with the checksum field or with zero in its place."""
        checksum = self.checksum if with_checksum else 0
        try:
            header = _ICMP_HEADER.pack(
                self.type, self.code, checksum, self.ident, self.sequence
            )
        except struct.error as exc:
            raise PacketError(str(exc)) from exc
        return header + bytes(self.payload)

    def encode(self) -> bytes:
        """Return the wire form of the message."""
        return self.to_bytes(with_checksum=True)

    @classmethod
    def decode(cls, buffer: bytes) -> IcmpPacket:
        """Parse an echo reply; anything else is rejected."""
        if len(buffer) < _ICMP_HEADER.size:
            raise PacketError("invalid size")
        typ, code, _checksum, ident, sequence = _ICMP_HEADER.unpack_from(buffer)
        log.log(TRACE, "icmp type=%d code=%d", typ, code)
        if typ != 0 or code != 0:
            raise PacketError("invalid packet")
        return cls(
            type=typ,
            code=code,
            checksum=0,
            ident=ident,
            sequence=sequence,
            payload=bytes(buffer[_ICMP_HEADER.size:]),
        )


class Ipv4Protocol(enum.Enum):
    """IPv4 payload protocols understood here."""

    ICMP = 1

    @classmethod
    def decode(cls, value: int) -> Ipv4Protocol | None:
        """Return the protocol for ``value``, or None if unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class Ipv4Packet:
    """A decoded IPv4 datagram."""

    version: int
    ihl: int
    tos: int
    tot_len: int
    identification: int
    frag_off: int
    ttl: int
    protocol: Ipv4Protocol
    check: int
    from_addr: ipaddress.IPv4Address
    dest_addr: ipaddress.IPv4Address
    data: bytes

    @classmethod
    def decode(cls, buffer: bytes) -> Ipv4Packet:
        """Parse an IPv4 header and split off its payload."""
        if len(buffer) < _IPV4_HEADER.size:
            raise PacketError("invalid ipv4 header")
        (
            byte0,
            tos,
            tot_len,
            identification,
            frag_off,
            ttl,
            proto,
            check,
            src,
            dst,
        ) = _IPV4_HEADER.unpack_from(buffer)
        version = byte0 >> 4
        ihl = byte0 & 0x0F
        header_size = 4 * ihl
        log.log(TRACE, "ipv4 header_size=%d", header_size)
        if version != 4:
            raise PacketError("invalid version")
        if len(buffer) < header_size:
            raise PacketError("invalid header size")
        protocol = Ipv4Protocol.decode(proto)
        if protocol is None:
            raise PacketError("invalid ipv4 protocol")
        return cls(
            version=version,
            ihl=ihl,
            tos=tos,
            tot_len=tot_len,
            identification=identification,
            frag_off=frag_off,
            ttl=ttl,
            protocol=protocol,
            check=check,
            from_addr=ipaddress.IPv4Address(src),
            dest_addr=ipaddress.IPv4Address(dst),
            data=bytes(buffer[header_size:]),
        )