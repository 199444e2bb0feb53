"""Broadcast address discovery for seeding without configured peers.

Scans the host's network interfaces and returns the IPv4 broadcast
address of the first one that is up, is not loopback and supports
multicast. Interface flags come from ``psutil``; on platforms where
psutil reports no flags, loopback is detected from the address instead.
"""

from __future__ import annotations

import ipaddress
import logging
import socket
from typing import Any

import psutil

logger = logging.getLogger(__name__)


def _is_candidate(name: str, stats: dict[str, Any]) -> bool:
    st = stats.get(name)
    if st is None or not st.isup:
        return False
    flags = set(getattr(st, "flags", "").split(","))
    flags.discard("")
    if not flags:
        return True
    return "loopback" not in flags and "multicast" in flags


def get_broadcast_address() -> str | None:
    """Broadcast address of the first usable interface, or None."""
    stats = psutil.net_if_stats()
    for name, addrs in psutil.net_if_addrs().items():
        if not _is_candidate(name, stats):
            continue
        for addr in addrs:
            if addr.family != socket.AF_INET or not addr.broadcast:
                continue
            if ipaddress.IPv4Address(addr.address).is_loopback:
                continue
            logger.debug("Broadcast address %s found on %s", addr.broadcast, name)
            return addr.broadcast
    logger.debug("No broadcast-capable interface found")
    return None
