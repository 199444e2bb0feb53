"""Gossip-based peer discovery over UDP."""

from gossip_discovery.errors import (
    ConfigurationError,
    GossipError,
    MalformedPayloadError,
    SocketSetupError,
)
from gossip_discovery.node import GossipNode, NodeConfig, NodeState

__all__ = [
    "ConfigurationError",
    "GossipError",
    "GossipNode",
    "MalformedPayloadError",
    "NodeConfig",
    "NodeState",
    "SocketSetupError",
]
