"""Exceptions raised by the gossip discovery service."""

from __future__ import annotations


class GossipError(Exception):
    """Base class for gossip discovery errors."""


class ConfigurationError(GossipError):
    """Raised when the node cannot start with the given configuration.

    The usual cause is an empty peer table: no seed peers were added and
    broadcast discovery is not enabled, so there is nobody to gossip with.
    """


class SocketSetupError(GossipError):
    """Raised when a UDP socket cannot be created or bound."""


class MalformedPayloadError(GossipError):
    """Raised when a datagram payload is not a 4-byte IPv4 address."""
