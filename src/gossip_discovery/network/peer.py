"""Peer table — the shared map of every address this node has heard of.

Each entry maps an IPv4 address to the wall-clock time (milliseconds) of
the last datagram received directly from it, or to ``INDIRECT`` when the
address has only appeared inside another peer's gossip.

The table only grows. Direct knowledge is never downgraded: an indirect
sighting of an address that is already present leaves it untouched, while
a direct sighting always refreshes the timestamp.
"""

from __future__ import annotations

import ipaddress
import socket
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from gossip_discovery.errors import ConfigurationError

INDIRECT = -1


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def resolve_address(host: str) -> str:
    """Resolve a hostname or literal to a canonical dotted-quad address."""
    try:
        return str(ipaddress.IPv4Address(host))
    except ipaddress.AddressValueError:
        pass
    try:
        return socket.gethostbyname(host)
    except (socket.gaierror, UnicodeError) as e:
        raise ConfigurationError(f"Cannot resolve peer address {host!r}") from e


class PeerState(str, Enum):
    """How a peer became known."""

    DIRECT = "direct"
    INDIRECT = "indirect"


@dataclass(frozen=True)
class PeerRecord:
    """A point-in-time view of one table entry."""

    address: str
    last_contact: int

    @property
    def is_direct(self) -> bool:
        return self.last_contact != INDIRECT

    @property
    def state(self) -> PeerState:
        return PeerState.DIRECT if self.is_direct else PeerState.INDIRECT

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "last_contact": self.last_contact,
            "state": self.state.value,
        }


class PeerTable:
    """Thread-safe address → last-contact map.

    The receiver is the only writer while the node runs; the transmitter
    and the embedding application read snapshots. The lock is held only
    for the dictionary operation itself, never across network I/O.
    """

    def __init__(self) -> None:
        self._peers: dict[str, int] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._peers)

    def __contains__(self, address: object) -> bool:
        return address in self._peers

    def upsert_direct(self, address: str) -> bool:
        """Record a datagram received from *address* right now.

        Returns True if the address was not known before.
        """
        timestamp = now_ms()
        with self._lock:
            is_new = address not in self._peers
            self._peers[address] = timestamp
        return is_new

    def upsert_indirect(self, address: str) -> bool:
        """Record *address* as announced by someone else.

        Only creates the entry; an existing entry keeps its timestamp.
        Returns True if the entry was created.
        """
        with self._lock:
            if address in self._peers:
                return False
            self._peers[address] = INDIRECT
        return True

    def seed(self, address: str) -> bool:
        """Add a known peer before (or after) the node starts."""
        return self.upsert_indirect(resolve_address(address))

    def snapshot(self) -> list[str]:
        """Copy of the known addresses, safe to iterate during I/O."""
        with self._lock:
            return list(self._peers)

    def get(self, address: str) -> PeerRecord | None:
        timestamp = self._peers.get(address)
        if timestamp is None:
            return None
        return PeerRecord(address, timestamp)

    def records(self) -> list[PeerRecord]:
        with self._lock:
            items = list(self._peers.items())
        return [PeerRecord(address, ts) for address, ts in items]

    def get_stats(self) -> dict[str, int]:
        records = self.records()
        direct = sum(1 for r in records if r.is_direct)
        return {
            "known_peers": len(records),
            "direct_peers": direct,
            "indirect_peers": len(records) - direct,
        }
