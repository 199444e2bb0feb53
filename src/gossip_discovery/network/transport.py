"""Transport layer — UDP socket setup for the gossip loops.

The receiver owns a socket bound to the configured address and port. The
transmitter owns a second socket bound to an ephemeral port on the same
address and sends to ``dest_port`` on every peer. Both sockets are
non-blocking so the loops can drive them through the asyncio event loop.
"""

from __future__ import annotations

import logging
import socket

from gossip_discovery.errors import SocketSetupError

logger = logging.getLogger(__name__)

IPTOS_RELIABILITY = 0x04
MAX_DATAGRAM_SIZE = 512


def open_receive_socket(host: str, port: int) -> socket.socket:
    """Create the receive socket bound to ``(host, port)``."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.bind((host, port))
        sock.setblocking(False)
    except OSError as e:
        sock.close()
        raise SocketSetupError(f"Cannot bind receive socket to {host}:{port}: {e}") from e
    logger.info("Receive socket bound to %s:%d", *sock.getsockname()[:2])
    return sock


def open_send_socket(host: str, broadcast: bool = False) -> socket.socket:
    """Create the send socket bound to an ephemeral port on *host*."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        if broadcast:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.bind((host, 0))
        sock.setblocking(False)
    except OSError as e:
        sock.close()
        raise SocketSetupError(f"Cannot bind send socket to {host}: {e}") from e

    # Type-of-service is advisory; some platforms refuse it.
    try:
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_TOS, IPTOS_RELIABILITY)
    except (OSError, AttributeError):
        logger.debug("IP_TOS not supported on this platform")

    logger.info("Send socket bound to %s:%d", *sock.getsockname()[:2])
    return sock
