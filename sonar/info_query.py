"""Whois and geolocation lookup shown before pinging."""

from __future__ import annotations

import json
import logging
import threading
import urllib.error
import urllib.request
from typing import Any

from rich.console import Console
from rich.status import Status

from sonar.netutil import DnsLookupError, dns_lookup
from sonar.whois import WhoIs, WhoIsError

log = logging.getLogger(__name__)

GEOLOCATION_URL = "https://api.ip2location.io/?ip={ip}"
GEOLOCATION_TIMEOUT = 1.5
UNKNOWN = "Unknown"


class InfoQueryError(Exception):
    """Raised when the extra information cannot be gathered."""


def _text(geo: dict[str, Any], key: str) -> str:
    value = geo.get(key)
    return value if isinstance(value, str) else UNKNOWN


def format_info(netname: str | None, geo: Any) -> str:
    """Render the network name and geolocation fields as display lines."""
    if not isinstance(geo, dict):
        geo = {}
    return (
        f"NetName: {netname if netname is not None else UNKNOWN}\n"
        f"Organization: {_text(geo, 'as')}\n"
        f"Location: {_text(geo, 'country_name')}, "
        f"{_text(geo, 'region_name')}, {_text(geo, 'city_name')}"
    )


def _fail(status: Status, console: Console) -> None:
    status.stop()
    console.print("Whois failed", style="rgb(255,0,0)", markup=False)


def _fetch_geolocation(ip: str) -> Any:
    url = GEOLOCATION_URL.format(ip=ip)
    try:
        with urllib.request.urlopen(url, timeout=GEOLOCATION_TIMEOUT) as response:
            raw = response.read()
    except (urllib.error.URLError, OSError, ValueError) as exc:
        log.warning("geolocation request failed: %s", exc)
        raise InfoQueryError("geolocation request failed") from exc
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        log.warning("failed to get response text: %s", exc)
        raise InfoQueryError("failed to get response text") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        log.warning("failed to parse json: %s", exc)
        raise InfoQueryError("failed to parse json") from exc


def whois(addr: str, stop_event: threading.Event | None = None) -> str | None:
    """Print the network name and location of ``addr``.

    Returns the printed text, or None when the whois server gave no answer.
    Raises :class:`InfoQueryError` when the address or the geolocation
    lookup fails.
    """
    console = Console(highlight=False)
    status = console.status("Getting whois", spinner="dots")
    status.start()
    try:
        try:
            query = WhoIs(addr)
        except WhoIsError as exc:
            _fail(status, console)
            log.warning("%s", exc)
            raise InfoQueryError(str(exc)) from exc

        try:
            response = query.get_whois(stop_event)
        except WhoIsError as exc:
            _fail(status, console)
            log.warning("%s", exc)
            return None

        status.update("Getting geolocation")
        try:
            ip = dns_lookup(addr)
        except DnsLookupError as exc:
            log.warning("dns lookup failed: %s", exc)
            raise InfoQueryError("dns lookup failed") from exc

        geo = _fetch_geolocation(str(ip))
    finally:
        status.stop()

    text = format_info(response.netname, geo)
    console.print(text, markup=False)
    return text