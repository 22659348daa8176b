"""
Tests for the packet framing and the socket error mapping
"""
import socket
import struct

import pytest

from conftest import FakeSocket, packet, string
from mcserverstatus import connection
from mcserverstatus.connection import Connection, ResponsePacket
from mcserverstatus.errors import CommunicationError, ConnectionFailed, ConnStatus, InvalidResponse, VarIntTooLarge


class TestRequestPacket:
    def test_framing(self):
        sock = FakeSocket()
        Connection(sock).new_request(0x00).write_varint(4).write_string("example.com").write_short(25565).send()
        body = b"\x00\x04\x0bexample.com" + struct.pack(">H", 25565)
        assert bytes(sock.sent) == bytes([len(body)]) + body

    def test_empty_packet(self):
        sock = FakeSocket()
        Connection(sock).new_request(0x00).send()
        assert bytes(sock.sent) == b"\x01\x00"

    def test_field_encodings(self):
        sock = FakeSocket()
        Connection(sock).new_request(0x01).write_byte(0xFE).write_int(-1).write_long(1).write_bytes(b"ab").send()
        assert bytes(sock.sent) == b"\x10\x01\xfe\xff\xff\xff\xff" + b"\x00" * 7 + b"\x01ab"

    def test_send_returns_time(self):
        assert isinstance(Connection(FakeSocket()).new_request(0x00).send(), float)


class TestReadPacket:
    def test_read(self):
        conn = Connection(FakeSocket(packet(0x00, string("hello")) + b"next"))
        response = conn.read_packet()
        assert response.read_varint() == 0x00
        assert response.read_string() == "hello"
        assert conn.read_exact(4) == b"next"

    def test_chunked(self):
        payload = string("x" * 300)
        conn = Connection(FakeSocket(packet(0x00, payload), chunk_size=7))
        response = conn.read_packet()
        assert response.read_varint() == 0x00
        assert response.read_string() == "x" * 300

    def test_closed_mid_packet(self):
        conn = Connection(FakeSocket(packet(0x00, string("hello"))[:4]))
        with pytest.raises(CommunicationError) as exc_info:
            conn.read_packet()
        assert exc_info.value.status is ConnStatus.UNKNOWN

    def test_timeout(self):
        conn = Connection(FakeSocket(on_empty=socket.timeout("timed out")))
        with pytest.raises(CommunicationError) as exc_info:
            conn.read_packet()
        assert exc_info.value.status is ConnStatus.TIMEOUT

    def test_reset(self):
        conn = Connection(FakeSocket(on_empty=ConnectionResetError()))
        with pytest.raises(CommunicationError) as exc_info:
            conn.read_byte()
        assert exc_info.value.status is ConnStatus.UNKNOWN

    def test_other_socket_error(self):
        conn = Connection(FakeSocket(on_empty=OSError("network unreachable")))
        with pytest.raises(CommunicationError) as exc_info:
            conn.read_byte()
        assert exc_info.value.status is ConnStatus.CONNFAIL

    def test_length_too_large(self):
        conn = Connection(FakeSocket(b"\xff\xff\xff\xff\xff\x01"))
        with pytest.raises(VarIntTooLarge):
            conn.read_packet()

    def test_buffered(self):
        left, right = socket.socketpair()
        try:
            right.sendall(packet(0x01, struct.pack(">q", 42)))
            with Connection(left, buffered=True) as conn:
                response = conn.read_packet()
                assert response.read_varint() == 0x01
                assert response.read_long() == 42
        finally:
            right.close()


class TestResponsePacket:
    def test_truncated(self):
        with pytest.raises(InvalidResponse):
            ResponsePacket(b"\x01", 0.0).read_long()

    def test_string_longer_than_packet(self):
        with pytest.raises(InvalidResponse):
            ResponsePacket(b"\x05abc", 0.0).read_string()

    def test_invalid_utf8(self):
        with pytest.raises(InvalidResponse, match="UTF-8"):
            ResponsePacket(b"\x02\xc3\x28", 0.0).read_string()

    def test_empty_string(self):
        assert ResponsePacket(b"\x00", 0.0).read_string() == ""


class FailingSocket:
    def __init__(self, error):
        self.error = error
        self.closed = False

    def setsockopt(self, *args):
        pass

    def settimeout(self, timeout):
        pass

    def connect(self, address):
        raise self.error

    def close(self):
        self.closed = True


class TestConnect:
    @pytest.mark.parametrize(
        "error, status",
        [
            (socket.timeout("timed out"), ConnStatus.TIMEOUT),
            (ConnectionRefusedError(111, "Connection refused"), ConnStatus.CONNFAIL),
        ],
    )
    def test_failure(self, monkeypatch, error, status):
        sockets = []

        def create(*args):
            sockets.append(FailingSocket(error))
            return sockets[-1]

        monkeypatch.setattr(connection.socket, "socket", create)
        with pytest.raises(ConnectionFailed) as exc_info:
            Connection.connect("127.0.0.1", 25565, timeout=1)
        assert exc_info.value.status is status
        assert sockets[0].closed

    def test_latency(self):
        server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        server.bind(("127.0.0.1", 0))
        server.listen(1)
        try:
            with Connection.connect("127.0.0.1", server.getsockname()[1], timeout=1, tcp_nodelay=True) as conn:
                assert conn.latency >= 0
        finally:
            server.close()
