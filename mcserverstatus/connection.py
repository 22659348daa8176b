# mcserverstatus - A Minecraft server status client
# Copyright (C) 2016-2023 Lloyd Dilley, Felix Ern (MindSolve)
# http://www.dilley.me/
#
# Secondary optimization and customization are carried out by @molanp.
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along
# with this program; if not, write to the Free Software Foundation, Inc.,
# 51 Franklin Street, Fifth Floor, Boston, MA 02110-1301 USA.
"""
A timed TCP connection with the length-prefixed packet framing of the current SLP protocol.

Packet format: VarInt length, VarInt packet id, data.
See https://minecraft.wiki/w/Minecraft_Wiki:Projects/wiki.vg_merge/Protocol#Packet_format
"""
import contextlib
import io
import logging
import socket
import struct
from time import perf_counter

from .errors import CommunicationError, ConnectionFailed, ConnStatus, InvalidResponse
from .varint import encode_varint, read_varint

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 6
"""default socket timeout in seconds"""


@contextlib.contextmanager
def communication(action: str):
    """
    Translate socket errors raised while talking to a connected server.

    :param action: what was being done, used in the error message
    """
    try:
        yield
    except TimeoutError as e:
        raise CommunicationError(f"timed out while {action}", ConnStatus.TIMEOUT) from e
    except (ConnectionResetError, ConnectionAbortedError) as e:
        raise CommunicationError(f"connection closed while {action}", ConnStatus.UNKNOWN) from e
    except OSError as e:
        raise CommunicationError(f"failed {action}: {e}", ConnStatus.CONNFAIL) from e


def elapsed_ms(start_time: float, end_time: float) -> int:
    return round((end_time - start_time) * 1000)


class Connection:
    """
    An established TCP connection to a server.

    :param sock: connected socket, owned by this connection from now on
    :param latency: duration of the TCP handshake in milliseconds, -1 if unknown
    :param buffered: read through a buffered file object instead of raw `recv` calls
    """

    def __init__(self, sock: socket.socket, latency: int = -1, buffered: bool = False) -> None:
        self.sock = sock
        self.latency = latency
        self._reader = sock.makefile("rb") if buffered else None

    @classmethod
    def connect(
        cls,
        ip: str,
        port: int,
        timeout: float = DEFAULT_TIMEOUT,
        tcp_nodelay: bool = False,
        buffered: bool = False,
    ) -> "Connection":
        """
        Open a connection and roughly determine the latency from the TCP 3-way handshake.

        :raises ConnectionFailed: if the connection could not be established
        """
        family = socket.AF_INET6 if ":" in ip else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)

        try:
            # Socket may be closed and immediately rebound/reconnected
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.settimeout(timeout)
            if tcp_nodelay:
                sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

            start_time = perf_counter()
            sock.connect((ip, port))
            latency = elapsed_ms(start_time, perf_counter())
        except TimeoutError as e:
            sock.close()
            raise ConnectionFailed(f"timed out connecting to {ip}:{port}", ConnStatus.TIMEOUT) from e
        except OSError as e:
            sock.close()
            raise ConnectionFailed(f"failed to establish connection to {ip}:{port}: {e}") from e

        logger.debug(f"Connected to {ip}:{port} in {latency}ms")
        return cls(sock, latency, buffered)

    def new_request(self, packet_id: int) -> "RequestPacket":
        return RequestPacket(self, packet_id)

    def write(self, data: bytes | bytearray) -> float:
        """
        Send raw bytes.

        :return: the time (`perf_counter`) right before the data was sent
        """
        time_sent = perf_counter()
        with communication("sending data"):
            self.sock.sendall(data)
        return time_sent

    def read_exact(self, size: int) -> bytes:
        """
        Helper function for receiving a specific amount of data. Works around the problems of `socket.recv`.
        Raises a CommunicationError if the connection was closed while waiting for data.

        :param size: Amount of bytes of data to receive
        """
        data = bytearray()

        with communication("receiving data"):
            while len(data) < size:
                if self._reader is not None:
                    temp_data = self._reader.read(size - len(data))
                else:
                    temp_data = self.sock.recv(size - len(data))

                if not temp_data:
                    raise ConnectionAbortedError

                data += temp_data

        return bytes(data)

    def read_byte(self) -> int:
        return self.read_exact(1)[0]

    def read_packet(self) -> "ResponsePacket":
        """
        Block until a full packet (VarInt length prefix plus payload) was received.

        The receive time is taken as soon as the length prefix is complete.
        """
        length = read_varint(self.read_byte)
        time_received = perf_counter()
        payload = self.read_exact(length)
        logger.debug(f"Received packet of {length} bytes")
        return ResponsePacket(payload, time_received)

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
        self.sock.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class RequestPacket:
    """
    Outgoing packet builder. Fields are appended to `buffer`, `send()` prepends the packet length.
    """

    def __init__(self, connection: Connection, packet_id: int) -> None:
        self._connection = connection
        self.buffer = bytearray(encode_varint(packet_id))

    def write_bytes(self, data: bytes | bytearray) -> "RequestPacket":
        self.buffer += data
        return self

    def write_byte(self, value: int) -> "RequestPacket":
        return self.write_bytes(struct.pack(">B", value))

    def write_short(self, value: int) -> "RequestPacket":
        return self.write_bytes(struct.pack(">H", value))

    def write_int(self, value: int) -> "RequestPacket":
        return self.write_bytes(struct.pack(">i", value))

    def write_long(self, value: int) -> "RequestPacket":
        return self.write_bytes(struct.pack(">q", value))

    def write_varint(self, value: int) -> "RequestPacket":
        return self.write_bytes(encode_varint(value))

    def write_string(self, value: str) -> "RequestPacket":
        data = value.encode("utf8")
        return self.write_varint(len(data)).write_bytes(data)

    def send(self) -> float:
        """
        Write the length-prefixed packet to the connection.

        :return: the time (`perf_counter`) the packet was sent
        """
        return self._connection.write(encode_varint(len(self.buffer)) + self.buffer)


class ResponsePacket:
    """Reader over the payload of a received packet."""

    def __init__(self, payload: bytes, time_received: float) -> None:
        self._stream = io.BytesIO(payload)
        self.time_received = time_received

    def read_bytes(self, size: int) -> bytes:
        data = self._stream.read(size)
        if len(data) != size:
            raise InvalidResponse(f"packet ended after {len(data)} of {size} bytes")
        return data

    def read_byte(self) -> int:
        return self.read_bytes(1)[0]

    def read_varint(self) -> int:
        return read_varint(self.read_byte)

    def read_long(self) -> int:
        return struct.unpack(">q", self.read_bytes(8))[0]

    def read_string(self) -> str:
        length = self.read_varint()
        try:
            return self.read_bytes(length).decode("utf8")
        except UnicodeDecodeError as e:
            raise InvalidResponse(f"string is not valid UTF-8: {e}") from e
