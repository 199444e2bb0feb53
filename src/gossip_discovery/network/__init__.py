"""Networking layer — peer table, wire codec and the gossip loops."""

from gossip_discovery.network.peer import INDIRECT, PeerRecord, PeerState, PeerTable
from gossip_discovery.network.receiver import Receiver
from gossip_discovery.network.transmitter import Transmitter

__all__ = ["INDIRECT", "PeerRecord", "PeerState", "PeerTable", "Receiver", "Transmitter"]
