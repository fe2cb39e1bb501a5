"""Host name resolution."""

from __future__ import annotations

import ipaddress
import logging
import socket

log = logging.getLogger(__name__)


class DnsLookupError(Exception):
    """Raised when a host name cannot be resolved."""


def dns_lookup(host: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    """Resolve ``host`` and return the first address found."""
    try:
        results = socket.getaddrinfo(host, 0)
    except (socket.gaierror, UnicodeError, OSError) as exc:
        log.error("could not resolve dns: %s", exc)
        raise DnsLookupError("could not resolve dns") from exc
    for _family, _type, _proto, _canon, sockaddr in results:
        address = str(sockaddr[0]).split("%", 1)[0]
        return ipaddress.ip_address(address)
    log.error("could not resolve dns")
    raise DnsLookupError("could not resolve dns")