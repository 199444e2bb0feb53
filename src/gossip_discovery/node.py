"""Gossip node — lifecycle of the reception and transmission loops.

A node:
1. Holds the peer table, seeded with known peers before or after start
2. Receives discovery datagrams and records direct and indirect peers
3. Periodically pushes its full peer list to every known peer
4. Optionally serves its table over HTTP for monitoring

States move ``CREATED → RUNNING → STOPPING → STOPPED``. The node is
``STOPPED`` once the transmission loop has fully exited, whether because
it was asked to stop or because it failed.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from gossip_discovery.errors import ConfigurationError, SocketSetupError
from gossip_discovery.network.discovery import get_broadcast_address
from gossip_discovery.network.peer import PeerTable
from gossip_discovery.network.receiver import Receiver
from gossip_discovery.network.transmitter import Transmitter
from gossip_discovery.network.transport import open_receive_socket, open_send_socket
from gossip_discovery.status import StatusServer

logger = logging.getLogger(__name__)

DEFAULT_PORT = 7946
DEFAULT_INTERVAL = 1.0


class NodeState(str, Enum):
    """Lifecycle state of a gossip node."""

    CREATED = "created"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class NodeConfig:
    """Configuration for a gossip node."""

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    dest_port: int | None = None      # Defaults to the bound receive port
    interval: float = DEFAULT_INTERVAL
    seed_peers: list[str] = field(default_factory=list)
    use_broadcast: bool = False
    status_host: str = "127.0.0.1"
    status_port: int | None = None    # None disables the status server


class GossipNode:
    """Peer discovery service embedding one receiver and one transmitter.

    Usage::

        node = GossipNode(NodeConfig(port=7946, seed_peers=["10.0.0.2"]))
        await node.start()
        ...
        peers = node.get_peers()
        await node.stop()
    """

    def __init__(self, config: NodeConfig, rng: random.Random | None = None) -> None:
        self.config = config
        self.table = PeerTable()
        self._rng = rng
        self._interval = config.interval
        self._state = NodeState.CREATED

        self._stop_event = asyncio.Event()
        self._done = asyncio.Event()
        self._receiver: Receiver | None = None
        self._transmitter: Transmitter | None = None
        self._receiver_task: asyncio.Task | None = None
        self._transmitter_task: asyncio.Task | None = None
        self._status: StatusServer | None = None
        self._bound_port: int | None = None

        for peer in config.seed_peers:
            self.add_known_peer(peer)

    # ── Embedding surface ────────────────────────────────────────

    @property
    def state(self) -> NodeState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is NodeState.RUNNING

    @property
    def bound_port(self) -> int | None:
        """Actual receive port, useful when configured with port 0."""
        return self._bound_port

    @property
    def interval(self) -> float:
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        if value < 0:
            raise ValueError("interval must be non-negative")
        self._interval = value
        if self._transmitter is not None:
            self._transmitter.interval = value

    def add_known_peer(self, address: str) -> None:
        """Seed a peer address; safe before or after start."""
        if self.table.seed(address):
            logger.info("Seed peer added: %s", address)

    def get_peers(self) -> list[str]:
        """Snapshot of every known peer address."""
        return self.table.snapshot()

    # ── Lifecycle ────────────────────────────────────────────────

    async def start(self) -> None:
        """Start the reception and transmission loops.

        Raises:
            ConfigurationError: No peers are known and broadcast seeding
                is disabled or found no interface.
            SocketSetupError: A socket could not be bound.
        """
        if self._state in (NodeState.RUNNING, NodeState.STOPPING):
            return

        if len(self.table) == 0 and self.config.use_broadcast:
            broadcast = get_broadcast_address()
            if broadcast:
                self.table.upsert_indirect(broadcast)
                logger.info("Seeded with broadcast address %s", broadcast)

        if len(self.table) == 0:
            logger.error("Cannot start gossip node: no peers known")
            raise ConfigurationError(
                "No seed peers and multicast discovery not configured"
            )

        if self._receiver_task and not self._receiver_task.done():
            self._receiver_task.cancel()

        self._done = asyncio.Event()
        try:
            recv_sock = open_receive_socket(self.config.host, self.config.port)
        except SocketSetupError:
            self._state = NodeState.STOPPED
            self._done.set()
            raise
        try:
            send_sock = open_send_socket(self.config.host, self.config.use_broadcast)
        except SocketSetupError:
            recv_sock.close()
            self._state = NodeState.STOPPED
            self._done.set()
            raise

        self._bound_port = recv_sock.getsockname()[1]
        dest_port = self.config.dest_port or self._bound_port
        self._stop_event = asyncio.Event()
        self._receiver = Receiver(self.table, recv_sock, self._stop_event)
        self._transmitter = Transmitter(
            self.table,
            send_sock,
            dest_port,
            self._interval,
            self._stop_event,
            rng=self._rng,
        )

        self._state = NodeState.RUNNING
        self._receiver_task = asyncio.create_task(self._receiver.run())
        self._transmitter_task = asyncio.create_task(
            self._run_transmitter(self._transmitter, self._receiver_task)
        )

        if self.config.status_port is not None:
            self._status = StatusServer(
                self, host=self.config.status_host, port=self.config.status_port,
            )
            try:
                await self._status.start()
            except SocketSetupError:
                await self.stop()
                raise

        logger.info(
            "Gossip node started: %s:%d → port %d, peers=%d",
            self.config.host, self._bound_port, dest_port, len(self.table),
        )

    async def _run_transmitter(
        self, transmitter: Transmitter, receiver_task: asyncio.Task,
    ) -> None:
        try:
            await transmitter.run()
        except ConfigurationError:
            logger.error("Exception starting transmission loop", exc_info=True)
        except Exception:
            logger.exception("Transmission loop failed")
        finally:
            if not receiver_task.done():
                receiver_task.cancel()
            self._state = NodeState.STOPPED
            self._done.set()

    async def stop(self, wait: bool = True) -> None:
        """Stop both loops.

        Args:
            wait: Block until the transmission loop has exited before
                cancelling the reception loop. Without it the reception
                loop is cancelled immediately and the transmission loop
                winds down on its own.
        """
        if self._transmitter_task is None or self._state is NodeState.CREATED:
            return

        if self._state is NodeState.RUNNING:
            self._state = NodeState.STOPPING
        self._stop_event.set()

        if wait:
            await self._done.wait()

        if self._receiver_task and not self._receiver_task.done():
            self._receiver_task.cancel()
            try:
                await self._receiver_task
            except asyncio.CancelledError:
                pass

        if self._status:
            await self._status.stop()
            self._status = None

        logger.info("Gossip node stopped")

    async def wait_stopped(self) -> None:
        """Block until the transmission loop has exited."""
        await self._done.wait()

    def get_stats(self) -> dict[str, Any]:
        stats: dict[str, Any] = {"state": self._state.value}
        stats.update(self.table.get_stats())
        if self._receiver:
            stats.update(self._receiver.get_stats())
        if self._transmitter:
            stats.update(self._transmitter.get_stats())
        return stats
