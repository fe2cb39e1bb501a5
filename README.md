# sonar

A modern take on `ping`. It sends ICMP echo requests to an IPv4 host and prints each reply with its sequence number, the source and destination addresses and the round-trip time. Before it starts pinging, it can also look up the network name of the target through whois, and the organisation and location through the ip2location.io geolocation service.

## Installation

```
pip install .
```

Sending ICMP packets needs a raw socket, so on most systems `sonar` has to run as root. The other way is to give the Python interpreter the `CAP_NET_RAW` capability.

## Usage

```
sonar [-v...] [-c COUNT] [-i INTERVAL] [-x] IP
```

| Option | Meaning |
|---|---|
| `IP` | Address or host name to ping. A host name is resolved and the first address found is used. |
| `-c`, `--count COUNT` | Number of pings to send. Without it, `sonar` keeps pinging until it is interrupted. It cannot be negative. |
| `-i`, `--interval SECONDS` | Seconds to wait before each packet. The default is `1.0`. It cannot be negative. |
| `-x`, `--extra` | Look up the whois network name and the geolocation first |
| `-v`, `--verbose` | Show more log output. Repeat it for more: `-v` warnings, `-vv` info, `-vvv` debug, `-vvvv` trace. |
| `--version` | Print the version and exit |

Examples:

```
sudo sonar 1.1.1.1 -c 4
sudo sonar example.com -x -i 0.5
```

Each reply is printed in this form:

```
[1] | 1.1.1.1 -> 192.168.1.10 | 12.34 ms
```

Each ping waits up to 2 seconds for its reply. A ping that gets no answer or fails prints nothing, and `sonar` goes on to the next one. The exit status is `0`, or `1` when the address cannot be resolved or the raw socket cannot be opened.

With `-x` the lookup output looks like this. A field that cannot be found shows `Unknown`:

```
NetName: EXAMPLE-NET
Organization: Example Org
Location: Country, Region, City
```

If the whois query fails, `Whois failed` is printed and pinging goes ahead.

Press Ctrl-C to stop pinging. If you press it while the whois lookup is still running, only the lookup is cancelled, and pinging then starts.

## Library use

The building blocks can also be used from Python code:

- `sonar.pinger.Pinger(addr, timeout=2.0)` sends echo requests. Call `init_socket()` first, then `ping(stop_event=None)`. Each call returns a `PingReply` with `elapsed` (seconds), `sequence`, `from_addr` and `dest_addr`, or raises `PingError`. `dest()` gives the resolved address. The object is a context manager and also has `close()`.
- `sonar.whois.WhoIs(addr, timeout=2.0).get_whois(stop_event=None)` asks `whois.iana.org` which whois server to use, queries that server and returns a `WhoIsResponse` with `netname`. Failures raise `WhoIsError`.
- `sonar.whois.parse_whois(text)` reads the first `netname` line out of a whois answer.
- `sonar.info_query.whois(addr, stop_event=None)` prints the whois and geolocation summary. `sonar.info_query.format_info(netname, geo)` builds that summary text.
- `sonar.packet` encodes and decodes ICMP echo messages (`IcmpPacket`) and IPv4 datagrams (`Ipv4Packet`). It also provides the checksum helper `sum_big_endian_words`.
- `sonar.netutil.dns_lookup(host)` resolves a host name to its first address.
- `sonar.logger.register(level)` and `level_from_verbosity(count)` set up logging output.

## Limitations

- Only IPv4 is supported. A host that resolves to an IPv6 address cannot be pinged.
- The geolocation lookup needs internet access to ip2location.io and gives up after 1.5 seconds.

## Running the tests

```
pip install .[test]
pytest
```