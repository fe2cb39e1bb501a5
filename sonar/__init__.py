"""Modern ping: ICMP echo over raw sockets, with optional whois and geolocation lookup."""

__version__ = "0.1.0"
__all__ = ["__version__"]