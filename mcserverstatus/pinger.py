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
#
# 由于 wiki.vg 站点已关闭，现在你可以在
# https://minecraft.wiki/w/Minecraft_Wiki:Projects/wiki.vg_merge#Project_pages
# 找到原始内容的副本
"""
Server List Ping (SLP) over TCP, in all its historical variants.

Each `PingProtocol` maps to a function running the whole exchange on its own `Connection`.
"""
import logging
import struct
from collections.abc import Callable
from enum import Enum
from time import perf_counter

from .connection import DEFAULT_TIMEOUT, Connection, elapsed_ms
from .errors import InvalidResponse, MangledResponse, ServerStatusError
from .models import PingResult, ServerStatus
from .parser import parse_beta_response, parse_json_response, parse_legacy_response
from .resolver import ResolvedAddress

logger = logging.getLogger(__name__)

HANDSHAKE_PACKET = 0x00
STATUS_REQUEST_PACKET = 0x00
PING_REQUEST_PACKET = 0x01
PROTOCOL_VERSION = 4
"""protocol version sent in the handshake (Minecraft 1.7.2)"""
HANDSHAKE_STATE_STATUS = 1
PING_TOKEN = 0x6D63737461747573
"""8 byte payload the server has to echo in its pong"""

LEGACY_PING_PACKET = 0xFE
LEGACY_PING_PAYLOAD = 0x01
LEGACY_PLUGIN_MESSAGE_PACKET = 0xFA
LEGACY_KICK_PACKET = 0xFF
LEGACY_PING_CHANNEL = "MC|PingHost"
LEGACY_PROTOCOL_VERSION = 74
"""[legacy] protocol version (before netty rewrite) sent by the 1.6 ping, 74 is MC 1.6.2"""


class PingProtocol(Enum):
    """
    Contains possible SLP (Server List Ping) protocols.

    - `JSON`: The newest and currently supported SLP protocol.

      Uses (wrapped) JSON as payload. Complex query, see `json_status()` for the protocol implementation.

      *Available since Minecraft 1.7*
    - `EXTENDED_LEGACY`: The previous SLP protocol

      Used by Minecraft 1.6, it is still supported by all newer server versions.
      Complex query needed, see implementation `extended_legacy_status()` for full protocol details.

      *Available since Minecraft 1.6*
    - `LEGACY`: The legacy SLP protocol.

      Used by Minecraft 1.4 and 1.5, it is the first protocol to contain the server version number.
      Very simple protocol call (2 byte), simple response decoding.

      *Available since Minecraft 1.4*
    - `BETA`: The first SLP protocol.

      Used by Minecraft Beta 1.8 till Release 1.3, it is the first SLP protocol.
      It contains very few details, no server version info, only MOTD, max- and online player counts.

      *Available since Minecraft Beta 1.8*
    """

    def __str__(self) -> str:
        return str(self.name)

    JSON = 3
    EXTENDED_LEGACY = 2
    LEGACY = 1
    BETA = 0


def send_handshake(connection: Connection, target: ResolvedAddress) -> None:
    (
        connection.new_request(HANDSHAKE_PACKET)
        .write_varint(PROTOCOL_VERSION)
        # Server address. Encoded with UTF8
        .write_string(target.host)
        .write_short(target.port)
        # Next packet state (1 for status, 2 for login)
        .write_varint(HANDSHAKE_STATE_STATUS)
        .send()
    )
    logger.debug(f"Sent handshake to {target.host}:{target.port}")


def request_status(connection: Connection) -> str:
    """
    Send the empty status request and receive the JSON document of the status response.
    """
    connection.new_request(STATUS_REQUEST_PACKET).send()

    response = connection.read_packet()
    # If we receive a packet with another id, something went wrong.
    if response.read_varint() != STATUS_REQUEST_PACKET:
        raise InvalidResponse("invalid status response packet")

    payload = response.read_string()
    if not payload:
        raise InvalidResponse("empty status response")
    return payload


def ping_exchange(connection: Connection) -> int:
    """
    Send a ping packet and wait for the pong echoing the token.

    :return: the round trip time in milliseconds
    """
    time_sent = connection.new_request(PING_REQUEST_PACKET).write_long(PING_TOKEN).send()

    response = connection.read_packet()
    if response.read_varint() != PING_REQUEST_PACKET:
        raise InvalidResponse("invalid ping response packet")
    if response.read_long() != PING_TOKEN:
        raise MangledResponse("mangled ping response packet")

    latency = elapsed_ms(time_sent, response.time_received)
    logger.debug(f"Ping took {latency}ms")
    return latency


def json_status(connection: Connection, target: ResolvedAddress, measure_latency: bool) -> PingResult:
    """
    Method for querying a modern (MC Java >= 1.7) server with the SLP protocol.
    This protocol is based on encoded JSON.

    See https://minecraft.wiki/w/Java_Edition_protocol/Server_List_Ping#Current_(1.7+)

    :param measure_latency: follow the status request with a ping; if only that ping fails,
        the latency of the TCP handshake is used instead
    """
    send_handshake(connection, target)
    payload = request_status(connection)

    latency = -1
    if measure_latency:
        try:
            latency = ping_exchange(connection)
        except ServerStatusError as e:
            logger.warning(f"Ping to {target.host}:{target.port} failed after status was received, using connect latency: {e}")
            latency = connection.latency

    return PingResult(parse_json_response(payload, target.address), latency)


def json_ping(connection: Connection, target: ResolvedAddress) -> int:
    send_handshake(connection, target)
    return ping_exchange(connection)


def read_kick_payload(connection: Connection, time_sent: float) -> tuple[str, int]:
    """
    Receive the kick packet legacy servers answer pings with.

    Packet id 0xFF, payload length in characters (signed big-endian short), UTF-16BE payload.

    :return: the decoded payload and the latency from sending to the first received byte
    """
    packet_id = connection.read_byte()
    latency = elapsed_ms(time_sent, perf_counter())

    # Check packet id (should be "kick packet 0xFF")
    if packet_id != LEGACY_KICK_PACKET:
        raise InvalidResponse(f"expected kick packet 0xFF, got {packet_id:#04x}")

    content_len = struct.unpack(">h", connection.read_exact(2))[0]
    if content_len < 0:
        raise InvalidResponse(f"negative payload length {content_len}")

    payload_raw = connection.read_exact(content_len * 2)
    try:
        # According to wiki.vg, beta, legacy and extended legacy use UTF-16BE as "payload" encoding
        return payload_raw.decode("utf-16-be"), latency
    except UnicodeDecodeError as e:
        raise InvalidResponse(f"payload is not valid UTF-16BE: {e}") from e


def extended_legacy_status(connection: Connection, target: ResolvedAddress, measure_latency: bool) -> PingResult:
    """
    Minecraft 1.6 SLP query, extended legacy ping protocol.
    All modern servers are currently backwards compatible with this protocol.

    See https://minecraft.wiki/w/Java_Edition_protocol/Server_List_Ping#1.6
    """
    host = target.host.encode("utf-16-be")

    # Send 0xFE as packet identifier,
    # 0x01 as ping packet content
    # 0xFA as packet identifier for a plugin message
    req_data = bytearray([LEGACY_PING_PACKET, LEGACY_PING_PAYLOAD, LEGACY_PLUGIN_MESSAGE_PACKET])
    # the string 'MC|PingHost' as UTF-16BE encoded string, prefixed with its length
    req_data += struct.pack(">h", len(LEGACY_PING_CHANNEL))
    req_data += LEGACY_PING_CHANNEL.encode("utf-16-be")
    # byte count of rest of data, 7+len(serverhostname), as short
    req_data += struct.pack(">h", 7 + len(host))
    req_data += struct.pack(">B", LEGACY_PROTOCOL_VERSION)
    # strlen of serverhostname (big-endian short) and the hostname itself
    req_data += struct.pack(">h", len(host) // 2)
    req_data += host
    # port of the server, as int (4 byte)
    req_data += struct.pack(">i", target.port)

    time_sent = connection.write(req_data)
    payload, latency = read_kick_payload(connection, time_sent)
    return PingResult(parse_legacy_response(payload, target.address), latency)


def legacy_status(connection: Connection, target: ResolvedAddress, measure_latency: bool) -> PingResult:
    """
    Minecraft 1.4-1.5 SLP query, server response contains more info than beta SLP

    See https://minecraft.wiki/w/Java_Edition_protocol/Server_List_Ping#1.4_to_1.5
    """
    time_sent = connection.write(bytes([LEGACY_PING_PACKET, LEGACY_PING_PAYLOAD]))
    payload, latency = read_kick_payload(connection, time_sent)
    return PingResult(parse_legacy_response(payload, target.address), latency)


def beta_status(connection: Connection, target: ResolvedAddress, measure_latency: bool) -> PingResult:
    """
    Minecraft Beta 1.8 to Release 1.3 SLP protocol

    See https://minecraft.wiki/w/Java_Edition_protocol/Server_List_Ping#Beta_1.8_to_1.3
    """
    time_sent = connection.write(bytes([LEGACY_PING_PACKET]))
    payload, latency = read_kick_payload(connection, time_sent)
    return PingResult(parse_beta_response(payload, target.address), latency)


StatusExchange = Callable[[Connection, ResolvedAddress, bool], PingResult]

STATUS_EXCHANGES: dict[PingProtocol, StatusExchange] = {
    PingProtocol.JSON: json_status,
    PingProtocol.EXTENDED_LEGACY: extended_legacy_status,
    PingProtocol.LEGACY: legacy_status,
    PingProtocol.BETA: beta_status,
}


def open_connection(target: ResolvedAddress, timeout: float) -> Connection:
    return Connection.connect(target.ip, target.port, timeout, tcp_nodelay=True)


def ping(target: ResolvedAddress, protocol: PingProtocol = PingProtocol.JSON, timeout: float = DEFAULT_TIMEOUT) -> int:
    """
    Ping the target server.

    :return: the latency in milliseconds determined by the ping from this machine to the server and back
    """
    with open_connection(target, timeout) as connection:
        if protocol is PingProtocol.JSON:
            return json_ping(connection, target)
        # legacy servers have no ping packet, the status request is timed instead
        return STATUS_EXCHANGES[protocol](connection, target, True).latency


def get_server(
    target: ResolvedAddress, protocol: PingProtocol = PingProtocol.JSON, timeout: float = DEFAULT_TIMEOUT
) -> ServerStatus:
    """Retrieve the mostly static information on the target server, without measuring the latency."""
    with open_connection(target, timeout) as connection:
        return STATUS_EXCHANGES[protocol](connection, target, False).status


def get_server_status(
    target: ResolvedAddress, protocol: PingProtocol = PingProtocol.JSON, timeout: float = DEFAULT_TIMEOUT
) -> PingResult:
    """Retrieve information on the target server including its status and the ping latency."""
    with open_connection(target, timeout) as connection:
        return STATUS_EXCHANGES[protocol](connection, target, True)
