"""IP address parsing and network membership helpers."""

from __future__ import annotations

import ipaddress
from typing import Iterable

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address
IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network

# Carrier-grade NAT block, used by Tailscale for node addresses.
CGNAT_NETWORK = ipaddress.IPv4Network("100.64.0.0/10")


def parse_ip(value: str) -> IPAddress | None:
    """Parse an IP address.

    Returns ``None`` for empty or malformed input.
    """
    if not value:
        return None
    try:
        return ipaddress.ip_address(value.strip())
    except ValueError:
        return None


def is_cgnat_ip(value: str) -> bool:
    """Check whether *value* is an IPv4 address inside 100.64.0.0/10.

    IPv4-mapped IPv6 addresses (``::ffff:100.64.0.1``) count as IPv4.
    """
    ip = parse_ip(value)
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    match ip:
        case ipaddress.IPv4Address():
            return ip in CGNAT_NETWORK
        case _:
            return False


def parse_allowed(
    entries: Iterable[str],
) -> tuple[list[IPAddress], list[IPNetwork]]:
    """Split allow-list entries into single addresses and networks.

    Entries containing ``/`` are read as CIDR blocks, everything
    else as a single address.  Entries that fail to parse are
    skipped.
    """
    addresses: list[IPAddress] = []
    networks: list[IPNetwork] = []
    for entry in entries:
        if "/" in entry:
            try:
                networks.append(ipaddress.ip_network(entry, strict=False))
            except ValueError:
                continue
        else:
            ip = parse_ip(entry)
            if ip is not None:
                addresses.append(ip)
    return addresses, networks


def is_valid_ip_or_cidr(entry: str) -> bool:
    """Check whether an allow-list entry parses."""
    addresses, networks = parse_allowed([entry])
    return bool(addresses or networks)


def ip_allowed(
    ip: IPAddress,
    addresses: list[IPAddress],
    networks: list[IPNetwork],
) -> bool:
    """Check *ip* against single addresses and CIDR networks."""
    if ip in addresses:
        return True
    else:
        return any(
            ip.version == net.version and ip in net for net in networks
        )
