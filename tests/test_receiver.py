"""Tests for gossip_discovery.network.receiver.Receiver."""

from __future__ import annotations

import asyncio
import socket

import pytest

from gossip_discovery.network.codec import encode_address
from gossip_discovery.network.peer import INDIRECT, PeerTable
from gossip_discovery.network.receiver import Receiver
from gossip_discovery.network.transport import open_receive_socket

SOURCE = ("10.0.0.1", 7946)


# ── Helpers ──────────────────────────────────────────────────────

async def wait_until(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def table():
    return PeerTable()


@pytest.fixture
def receiver(table):
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    yield Receiver(table, sock, asyncio.Event())
    sock.close()


# ── Datagram handling ────────────────────────────────────────────

class TestHandleDatagram:
    def test_source_is_direct(self, receiver, table):
        receiver.handle_datagram(encode_address("10.0.0.2"), SOURCE)
        assert table.get("10.0.0.1").is_direct

    def test_payload_is_indirect(self, receiver, table):
        receiver.handle_datagram(encode_address("10.0.0.2"), SOURCE)
        assert table.get("10.0.0.2").last_contact == INDIRECT

    def test_payload_does_not_downgrade_direct(self, receiver, table):
        table.upsert_direct("10.0.0.2")
        before = table.get("10.0.0.2").last_contact
        receiver.handle_datagram(encode_address("10.0.0.2"), SOURCE)
        assert table.get("10.0.0.2").last_contact == before

    def test_self_referential_payload(self, receiver, table):
        receiver.handle_datagram(encode_address("10.0.0.1"), SOURCE)
        assert len(table) == 1
        assert table.get("10.0.0.1").is_direct

    def test_indirect_upgraded_by_later_direct(self, receiver, table):
        receiver.handle_datagram(encode_address("10.0.0.5"), SOURCE)
        receiver.handle_datagram(encode_address("10.0.0.1"), ("10.0.0.5", 7946))
        assert table.get("10.0.0.5").is_direct

    @pytest.mark.parametrize("data", [b"", b"\x0a\x00\x00", b"\x0a\x00\x00\x02\x00"])
    def test_malformed_rejected(self, receiver, table, data):
        assert receiver.handle_datagram(data, SOURCE) is False
        assert len(table) == 0
        assert receiver.rejected == 1
        assert receiver.received == 0

    def test_counters(self, receiver):
        receiver.handle_datagram(encode_address("10.0.0.2"), SOURCE)
        receiver.handle_datagram(b"bad", SOURCE)
        assert receiver.get_stats() == {
            "received": 1,
            "rejected": 1,
            "receive_errors": 0,
        }


# ── Reception loop over loopback ─────────────────────────────────

class TestReceptionLoop:
    @pytest.mark.asyncio
    async def test_receives_over_udp(self, table):
        sock = open_receive_socket("127.0.0.1", 0)
        port = sock.getsockname()[1]
        stop = asyncio.Event()
        task = asyncio.create_task(Receiver(table, sock, stop).run())

        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sender:
            sender.sendto(encode_address("10.0.0.9"), ("127.0.0.1", port))
            await wait_until(lambda: "10.0.0.9" in table)

        assert table.get("127.0.0.1").is_direct
        assert table.get("10.0.0.9").last_contact == INDIRECT

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert sock.fileno() == -1

    @pytest.mark.asyncio
    async def test_malformed_datagram_does_not_halt_loop(self, table):
        sock = open_receive_socket("127.0.0.1", 0)
        port = sock.getsockname()[1]
        receiver = Receiver(table, sock, asyncio.Event())
        task = asyncio.create_task(receiver.run())

        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sender:
            sender.sendto(b"\x0a\x00\x00", ("127.0.0.1", port))
            sender.sendto(b"\x0a\x00\x00\x01\xff\xff", ("127.0.0.1", port))
            await wait_until(lambda: receiver.rejected == 2)
            assert len(table) == 0
            assert not task.done()

            sender.sendto(encode_address("10.0.0.2"), ("127.0.0.1", port))
            await wait_until(lambda: "10.0.0.2" in table)

        assert "10.0.0.1" not in table
        assert table.get("127.0.0.1").is_direct
        assert receiver.received == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_receive_error_is_logged_and_loop_continues(self, table, monkeypatch, caplog):
        responses: list = [OSError("connection refused"), (encode_address("10.0.0.2"), SOURCE)]

        async def flaky_recvfrom(sock, bufsize):
            if responses:
                item = responses.pop(0)
                if isinstance(item, Exception):
                    raise item
                return item
            await asyncio.Event().wait()

        monkeypatch.setattr(asyncio.get_running_loop(), "sock_recvfrom", flaky_recvfrom)
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        receiver = Receiver(table, sock, asyncio.Event())
        task = asyncio.create_task(receiver.run())

        await wait_until(lambda: "10.0.0.2" in table)
        assert receiver.errors == 1
        assert table.get("10.0.0.1").is_direct
        assert not task.done()
        assert "Error receiving gossip packet" in caplog.text

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
