"""Status endpoint — read-only HTTP view of a running gossip node.

Runs a small aiohttp server next to the gossip sockets:
  - ``GET /health``  node state
  - ``GET /peers``   every table entry with its last-contact time
  - ``GET /stats``   table and loop counters
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aiohttp import web

from gossip_discovery.errors import SocketSetupError

if TYPE_CHECKING:
    from gossip_discovery.node import GossipNode

logger = logging.getLogger(__name__)


class StatusServer:
    """aiohttp server exposing a node's peer table."""

    def __init__(self, node: GossipNode, host: str = "127.0.0.1", port: int = 8946) -> None:
        self.node = node
        self.host = host
        self.port = port
        self._app = web.Application()
        self._runner: web.AppRunner | None = None

        self._app.router.add_get("/health", self._handle_health)
        self._app.router.add_get("/peers", self._handle_peers)
        self._app.router.add_get("/stats", self._handle_stats)

    async def start(self) -> None:
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        try:
            await site.start()
        except OSError as e:
            await self._runner.cleanup()
            self._runner = None
            raise SocketSetupError(
                f"Cannot bind status server to {self.host}:{self.port}: {e}"
            ) from e
        logger.info("Status server listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Status server stopped")

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "healthy", "state": self.node.state.value})

    async def _handle_peers(self, request: web.Request) -> web.Response:
        records = sorted(self.node.table.records(), key=lambda r: r.address)
        return web.json_response({"peers": [r.to_dict() for r in records]})

    async def _handle_stats(self, request: web.Request) -> web.Response:
        return web.json_response(self.node.get_stats())
