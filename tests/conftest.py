"""
Fake sockets and payload builders shared by the tests. Nothing here touches the network.
"""
import struct

import pytest

from mcserverstatus.connection import Connection
from mcserverstatus.resolver import ResolvedAddress
from mcserverstatus.varint import encode_varint


class FakeSocket:
    """Stands in for a connected TCP socket: serves canned bytes and records what was sent."""

    def __init__(self, response: bytes = b"", chunk_size: int | None = None, on_empty: Exception | None = None):
        self.incoming = bytearray(response)
        self.sent = bytearray()
        self.chunk_size = chunk_size
        self.on_empty = on_empty
        self.closed = False

    def sendall(self, data):
        self.sent += data

    def recv(self, size):
        if not self.incoming and self.on_empty is not None:
            raise self.on_empty
        if self.chunk_size:
            size = min(size, self.chunk_size)
        data = bytes(self.incoming[:size])
        del self.incoming[:size]
        return data

    def close(self):
        self.closed = True


class FakeDatagramSocket:
    """Stands in for a bound UDP socket, answering each datagram with the next canned response."""

    def __init__(self, responses=(), on_empty: Exception | None = None):
        self.responses = list(responses)
        self.sent = []
        self.on_empty = on_empty
        self.timeout = None
        self.closed = False

    def settimeout(self, timeout):
        self.timeout = timeout

    def sendto(self, data, address):
        self.sent.append((bytes(data), address))

    def recvfrom(self, size):
        if not self.responses:
            raise self.on_empty or TimeoutError("timed out")
        return self.responses.pop(0)[:size], ("127.0.0.1", 25565)

    def close(self):
        self.closed = True


def packet(packet_id: int, payload: bytes = b"") -> bytes:
    body = encode_varint(packet_id) + payload
    return encode_varint(len(body)) + body


def string(value: str) -> bytes:
    data = value.encode("utf8")
    return encode_varint(len(data)) + data


def kick_packet(payload: str) -> bytes:
    data = payload.encode("utf-16-be")
    return b"\xff" + struct.pack(">h", len(data) // 2) + data


def full_stat_response(
    players=("Notch", "jeb_"),
    hostname=b"A Minecraft Server",
    plugins="CraftBukkit: WorldEdit 5.3; CommandBook 2.1",
    numplayers=None,
    hostip="127.0.0.1",
) -> bytes:
    values = [
        b"hostname", hostname,
        b"gametype", b"SMP",
        b"game_id", b"MINECRAFT",
        b"version", b"1.2.5",
        b"plugins", plugins.encode(),
        b"map", b"world",
        b"numplayers", str(len(players) if numplayers is None else numplayers).encode(),
        b"maxplayers", b"20",
        b"hostport", b"25565",
        b"hostip", hostip.encode(),
    ]
    return (
        b"\x00"
        + struct.pack(">I", 1)
        + b"splitnum\x00\x80\x00"
        + b"\x00".join(values)
        + b"\x00\x00\x01player_\x00\x00"
        + b"".join(player.encode() + b"\x00" for player in players)
        + b"\x00"
    )


MINIMAL_STATUS = '{"description":"A Server","players":{"max":20,"online":5},"version":{"name":"1.12","protocol":335}}'


@pytest.fixture
def target():
    return ResolvedAddress("example.com", "127.0.0.1", 25565)


@pytest.fixture
def fake_connection(monkeypatch):
    """
    Route every ping connection to a FakeSocket serving `response`.

    Returns a factory; the created FakeSocket is returned so tests can inspect what was sent.
    """
    from mcserverstatus import pinger

    def install(response: bytes, latency: int = 12, **kwargs) -> FakeSocket:
        sock = FakeSocket(response, **kwargs)
        monkeypatch.setattr(pinger, "open_connection", lambda target, timeout: Connection(sock, latency))
        return sock

    return install
