"""Receiver — ingests discovery datagrams and updates the peer table.

Every datagram teaches us two things: its source address is a live,
directly reachable peer, and its 4-byte payload names a peer the sender
knows about. Datagrams whose payload is not exactly 4 bytes are rejected
whole; neither the source nor the payload is recorded.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import Any

from gossip_discovery.errors import MalformedPayloadError
from gossip_discovery.network.codec import decode_address
from gossip_discovery.network.peer import PeerTable
from gossip_discovery.network.transport import MAX_DATAGRAM_SIZE

logger = logging.getLogger(__name__)


class Receiver:
    """Reception loop bound to a single UDP socket."""

    def __init__(
        self,
        table: PeerTable,
        sock: socket.socket,
        stop_event: asyncio.Event,
    ) -> None:
        self.table = table
        self._sock = sock
        self._stop = stop_event
        self.received = 0
        self.rejected = 0
        self.errors = 0

    def handle_datagram(self, data: bytes, addr: tuple[str, int]) -> bool:
        """Apply one datagram to the peer table.

        Returns False when the datagram was rejected.
        """
        try:
            payload_address = decode_address(data)
        except MalformedPayloadError:
            self.rejected += 1
            logger.warning(
                "Rejected %d-byte datagram from %s:%d", len(data), addr[0], addr[1]
            )
            return False

        self.received += 1
        source = addr[0]
        if self.table.upsert_direct(source):
            logger.info("Added direct peer %s", source)
        if self.table.upsert_indirect(payload_address):
            logger.info("Discovered new peer %s", payload_address)
        return True

    async def run(self) -> None:
        """Receive until the stop event is set or the task is cancelled."""
        loop = asyncio.get_running_loop()
        logger.info("Starting gossip reception loop")
        try:
            while not self._stop.is_set():
                try:
                    data, addr = await loop.sock_recvfrom(self._sock, MAX_DATAGRAM_SIZE)
                except OSError:
                    self.errors += 1
                    logger.error("Error receiving gossip packet", exc_info=True)
                    continue
                self.handle_datagram(data, addr)
        finally:
            self._sock.close()
            logger.info("Gossip reception loop stopped")

    def get_stats(self) -> dict[str, Any]:
        return {
            "received": self.received,
            "rejected": self.rejected,
            "receive_errors": self.errors,
        }
