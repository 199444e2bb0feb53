"""Wire codec — fixed 4-byte IPv4 announcements and 8-byte longs.

A discovery datagram carries exactly one raw big-endian IPv4 address and
nothing else: no header, version byte or checksum. The long helpers are
not used by the address path; they exist for callers that want to extend
the payload with timestamps or counters.
"""

from __future__ import annotations

import ipaddress
import struct

from gossip_discovery.errors import MalformedPayloadError

PAYLOAD_SIZE = 4
LONG_SIZE = 8

_LONG = struct.Struct(">q")


def encode_address(address: str) -> bytes:
    """Pack a dotted-quad IPv4 address into its 4 raw bytes."""
    try:
        return ipaddress.IPv4Address(address).packed
    except ipaddress.AddressValueError as e:
        raise MalformedPayloadError(f"Not an IPv4 address: {address!r}") from e


def decode_address(data: bytes) -> str:
    """Unpack a 4-byte payload into a dotted-quad IPv4 address."""
    if len(data) != PAYLOAD_SIZE:
        raise MalformedPayloadError(
            f"Expected {PAYLOAD_SIZE}-byte payload, got {len(data)} bytes"
        )
    return str(ipaddress.IPv4Address(bytes(data)))


def long_to_bytes(value: int) -> bytes:
    """Encode a signed 64-bit integer as 8 big-endian bytes.

    Values outside the signed 64-bit range wrap the same way a
    two's-complement ``long`` would.
    """
    value &= 0xFFFFFFFFFFFFFFFF
    if value >= 1 << 63:
        value -= 1 << 64
    return _LONG.pack(value)


def bytes_to_long(data: bytes) -> int:
    """Decode the first 8 big-endian bytes of *data* as a signed integer."""
    if len(data) < LONG_SIZE:
        raise MalformedPayloadError(
            f"Expected at least {LONG_SIZE} bytes, got {len(data)}"
        )
    return _LONG.unpack_from(data)[0]
