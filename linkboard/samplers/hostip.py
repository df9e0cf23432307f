from __future__ import annotations

import ipaddress
import socket

import psutil

from linkboard.samplers.base import Sample


def _candidates() -> list[ipaddress.IPv4Address]:
    stats = psutil.net_if_stats()
    found: list[ipaddress.IPv4Address] = []
    for iface, addrs in psutil.net_if_addrs().items():
        st = stats.get(iface)
        if st is None or not st.isup:
            continue
        for addr in addrs:
            if addr.family != socket.AF_INET:
                continue
            try:
                ip = ipaddress.IPv4Address(addr.address)
            except ValueError:
                continue
            if ip.is_loopback or ip.is_link_local or ip.is_multicast:
                continue
            found.append(ip)
    return found


def choose_host_ip(candidates: list[ipaddress.IPv4Address]) -> str:
    """Pick the address a LAN user most likely reaches this host on.

    Preference: 192.168.1.x, then any 192.168.x.x, then any other private
    range, then whatever comes first.
    """
    home = ipaddress.IPv4Network("192.168.1.0/24")
    lan = ipaddress.IPv4Network("192.168.0.0/16")
    private = [
        ipaddress.IPv4Network("10.0.0.0/8"),
        ipaddress.IPv4Network("172.16.0.0/12"),
        lan,
    ]
    for ip in candidates:
        if ip in home:
            return str(ip)
    for ip in candidates:
        if ip in lan:
            return str(ip)
    for ip in candidates:
        if any(ip in net for net in private):
            return str(ip)
    return str(candidates[0]) if candidates else ""


def sample_host_ip() -> Sample[str]:
    try:
        return Sample(choose_host_ip(_candidates()))
    except OSError as exc:
        return Sample(None, str(exc))
