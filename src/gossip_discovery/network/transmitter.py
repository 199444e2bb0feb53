"""Transmitter — periodically pushes the whole peer list to every peer.

Each cycle takes a snapshot of the table and, for every known peer P and
every known address U (U == P included), sends P one datagram carrying U.
That is n² datagrams per cycle: full dissemination rather than bounded
fan-out, which keeps convergence simple for small clusters.

Cycles are separated by ``interval`` plus a uniform jitter of up to
``JITTER_MAX`` seconds so nodes configured with the same interval drift
out of phase instead of bursting together. A short interval discovers
peers quickly; the embedding application can raise it later to cut
steady-state chatter.
"""

from __future__ import annotations

import asyncio
import logging
import random
import socket
from typing import Any

from gossip_discovery.errors import ConfigurationError
from gossip_discovery.network.codec import encode_address
from gossip_discovery.network.peer import PeerTable

logger = logging.getLogger(__name__)

JITTER_MAX = 0.1  # Seconds


class Transmitter:
    """Broadcast loop bound to a single UDP send socket."""

    def __init__(
        self,
        table: PeerTable,
        sock: socket.socket,
        dest_port: int,
        interval: float,
        stop_event: asyncio.Event,
        rng: random.Random | None = None,
    ) -> None:
        self.table = table
        self.dest_port = dest_port
        self.interval = interval
        self._sock = sock
        self._stop = stop_event
        self._rng = rng or random.Random()
        self.cycles = 0
        self.packets_sent = 0
        self.send_errors = 0

    def next_delay(self) -> float:
        """Seconds to wait before the next cycle."""
        return self.interval + self._rng.uniform(0, JITTER_MAX)

    async def _sendto(self, data: bytes, addr: tuple[str, int]) -> None:
        await asyncio.get_running_loop().sock_sendto(self._sock, data, addr)

    async def broadcast(self) -> int:
        """Run one full dissemination sweep.

        Returns the number of datagrams sent. Failed sends are logged and
        skipped; they never abort the sweep.
        """
        peers = self.table.snapshot()
        sent = 0
        for peer in peers:
            for announced in peers:
                try:
                    await self._sendto(encode_address(announced), (peer, self.dest_port))
                    sent += 1
                except OSError:
                    self.send_errors += 1
                    logger.error(
                        "Failed to send gossip packet to %s:%d",
                        peer, self.dest_port, exc_info=True,
                    )
        self.cycles += 1
        self.packets_sent += sent
        logger.debug("Gossip cycle %d: %d/%d packets sent", self.cycles, sent, len(peers) ** 2)
        return sent

    async def _sleep(self, delay: float) -> None:
        """Wait for *delay* seconds or until the stop event is set."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def run(self) -> None:
        """Broadcast until the stop event is set.

        Raises:
            ConfigurationError: The peer table is empty, so there is
                nobody to gossip with. Nothing is sent.
        """
        try:
            if len(self.table) == 0:
                raise ConfigurationError(
                    "No seed peers and multicast discovery not configured"
                )
            logger.info("Starting gossip transmission loop to port %d", self.dest_port)
            while not self._stop.is_set():
                await self.broadcast()
                try:
                    await self._sleep(self.next_delay())
                except asyncio.CancelledError:
                    logger.warning("Broadcast loop interrupted")
                    raise
        finally:
            self._sock.close()
            logger.info("Gossip transmission loop stopped after %d cycles", self.cycles)

    def get_stats(self) -> dict[str, Any]:
        return {
            "cycles": self.cycles,
            "packets_sent": self.packets_sent,
            "send_errors": self.send_errors,
            "interval": self.interval,
        }
