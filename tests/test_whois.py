import socket
import threading
from unittest import mock

import pytest

from sonar.whois import WhoIs, WhoIsError, WhoIsResponse, parse_whois

HOSTS = {
    "whois.iana.org": "192.0.2.1",
    "whois.arin.net": "192.0.2.2",
}

IANA_ANSWER = (
    b"% IANA WHOIS server\n\n"
    b"refer:        whois.arin.net\n\n"
    b"inetnum:      203.0.0.0 - 203.255.255.255\n"
    b"whois:        whois.arin.net\n"
)

ARIN_ANSWER = (
    b"NetRange:       203.0.113.0 - 203.0.113.255\n"
    b"NetName:        EXAMPLE-NET\n"
    b"netname:        SECOND-NET\n"
)


def fake_getaddrinfo(host, port, *args, **kwargs):
    if host not in HOSTS:
        raise socket.gaierror("unknown host")
    return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", (HOSTS[host], port))]


class FakeTcpSocket:
    def __init__(self, answers):
        self.answers = answers
        self.connected = None
        self.sent = b""
        self.options = {}
        self.chunks = []
        self.closed = False

    def setsockopt(self, level, option, value):
        self.options[(level, option)] = value

    def settimeout(self, value):
        pass

    def connect(self, address):
        self.connected = address
        self.chunks = list(self.answers[address[0]])

    def sendall(self, data):
        self.sent += data

    def recv(self, size):
        if not self.chunks:
            return b""
        chunk = self.chunks.pop(0)
        if isinstance(chunk, BaseException):
            raise chunk
        return chunk

    def close(self):
        self.closed = True


@pytest.fixture
def network():
    sockets = []
    answers = {
        "192.0.2.1": [IANA_ANSWER[:20], IANA_ANSWER[20:]],
        "192.0.2.2": [ARIN_ANSWER],
    }

    def make(*args, **kwargs):
        sock = FakeTcpSocket(answers)
        sockets.append(sock)
        return sock

    with mock.patch("socket.getaddrinfo", side_effect=fake_getaddrinfo), mock.patch(
        "socket.socket", side_effect=make
    ):
        yield answers, sockets


def test_parse_whois_takes_first_netname():
    text = "x: y\nNetName:   EXAMPLE-NET\nnetname: OTHER\n"
    assert parse_whois(text) == WhoIsResponse(netname="EXAMPLE-NET")


def test_parse_whois_is_case_insensitive():
    assert parse_whois("NETNAME: LOUD-NET").netname == "LOUD-NET"


def test_parse_whois_without_netname():
    assert parse_whois("inetnum: 1.2.3.0 - 1.2.3.255\n").netname is None


def test_parse_whois_bare_key():
    assert parse_whois("netname").netname == "netname"


def test_get_whois(network):
    _answers, sockets = network
    result = WhoIs("203.0.113.5").get_whois()
    assert result.netname == "EXAMPLE-NET"
    assert [s.connected for s in sockets] == [("192.0.2.1", 43), ("192.0.2.2", 43)]
    assert all(s.sent == b"203.0.113.5\r\n" for s in sockets)
    assert all(s.closed for s in sockets)
    assert sockets[0].options[(socket.IPPROTO_IP, socket.IP_TTL)] == 255


def test_send_query_joins_chunks(network):
    assert WhoIs("203.0.113.5").send_query("whois.iana.org") == IANA_ANSWER.decode()


def test_address_resolved_by_dns(network):
    HOSTS_WITH_NAME = {**HOSTS, "host.example.com": "203.0.113.9"}

    def lookup(host, port, *args, **kwargs):
        return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", (HOSTS_WITH_NAME[host], port))]

    with mock.patch("socket.getaddrinfo", side_effect=lookup):
        assert str(WhoIs("host.example.com").addr) == "203.0.113.9"


def test_unresolvable_address(network):
    with pytest.raises(WhoIsError):
        WhoIs("missing.example.com")


def test_invalid_iana_response(network):
    answers, _sockets = network
    answers["192.0.2.1"] = [b"no referral here\n"]
    with pytest.raises(WhoIsError, match="invalid response"):
        WhoIs("203.0.113.5").get_whois()


def test_unknown_server(network):
    with pytest.raises(WhoIsError, match="could not resolve dns"):
        WhoIs("203.0.113.5").send_query("whois.unknown.example.com")


def test_invalid_utf8(network):
    answers, _sockets = network
    answers["192.0.2.2"] = [b"netname: \xff\xfe\n"]
    with pytest.raises(WhoIsError, match="invalid utf8"):
        WhoIs("203.0.113.5").send_query("whois.arin.net")


def test_read_error(network):
    answers, _sockets = network
    answers["192.0.2.2"] = [socket.timeout("timed out")]
    with pytest.raises(WhoIsError, match="could not read from socket"):
        WhoIs("203.0.113.5").send_query("whois.arin.net")


def test_stop_event(network):
    event = threading.Event()
    event.set()
    with pytest.raises(WhoIsError, match="stop signal"):
        WhoIs("203.0.113.5").get_whois(event)


def test_connect_failure(network):
    _answers, sockets = network

    class Refusing(FakeTcpSocket):
        def connect(self, address):
            raise ConnectionRefusedError("refused")

    with mock.patch("socket.socket", return_value=Refusing({})):
        with pytest.raises(WhoIsError, match="could not connect"):
            WhoIs("203.0.113.5").send_query("whois.arin.net")