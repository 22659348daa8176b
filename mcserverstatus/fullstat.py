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
The Query / GameSpot4 / UT3 protocol for Minecraft Java servers.

Needs to be enabled on the Minecraft server using "enable-query=true" in its "server.properties" file.
Only full stat requests are supported.
See https://minecraft.wiki/w/Minecraft_Wiki:Projects/wiki.vg_merge/Query
"""
import contextlib
import errno
import logging
import re
import socket
import struct

from .connection import DEFAULT_TIMEOUT, communication
from .errors import CommunicationError, ConnectionFailed, InvalidResponse
from .models import DEFAULT_PORT, QueryResult
from .parser import parse_query_response
from .resolver import ResolvedAddress

logger = logging.getLogger(__name__)

# padding that is prefixes to every packet
MAGIC = b"\xfe\xfd"
HANDSHAKE_TYPE = 9
STAT_TYPE = 0
SESSION_ID = 1
"""session id; its high bytes must stay zero, they are trimmed off the response with the padding"""
HANDSHAKE_REQUEST_SIZE = 11
RESPONSE_HEADER_SIZE = 5
"""type (1 byte) and session id (4 bytes) in front of every response"""
RECEIVE_BUFFER_SIZE = 9999
FIRST_LOCAL_PORT = DEFAULT_PORT
LAST_LOCAL_PORT = 65535

_TOKEN = re.compile(rb"-?[0-9]+")


def create_request(packet_type: int, payload: bytes = b"") -> bytes:
    return MAGIC + struct.pack(">BI", packet_type, SESSION_ID) + payload


def bind_socket(family: int = socket.AF_INET) -> socket.socket:
    """
    Bind a UDP socket to the first free local port, counting up from the default game port.

    :raises ConnectionFailed: if no local port is available
    """
    bind_host = "::" if family == socket.AF_INET6 else ""

    for local_port in range(FIRST_LOCAL_PORT, LAST_LOCAL_PORT + 1):
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            sock.bind((bind_host, local_port))
        except OSError as e:
            sock.close()
            # increment if port is already in use
            if e.errno in (errno.EADDRINUSE, errno.EACCES):
                logger.debug(f"Local port {local_port} is in use")
                continue
            raise ConnectionFailed(f"failed to bind a UDP socket: {e}") from e
        return sock

    raise ConnectionFailed(f"no free local port between {FIRST_LOCAL_PORT} and {LAST_LOCAL_PORT}")


def exchange(sock: socket.socket, request: bytes, target: ResolvedAddress) -> bytes:
    """
    Send a datagram and receive the answer.

    :raises CommunicationError: on timeout, socket errors or a response without header
    """
    with communication("querying"):
        sock.sendto(request, (target.ip, target.port))
        response, _ = sock.recvfrom(RECEIVE_BUFFER_SIZE)

    if len(response) < RESPONSE_HEADER_SIZE:
        raise CommunicationError(f"undersized response of {len(response)} bytes")
    return response


def parse_challenge_token(response: bytes) -> int:
    """
    Extract the challenge token from a handshake response. The beginning of the packet can be ignored.

    :return: the token as unsigned 32-bit integer, ready to be packed big-endian
    """
    challenge_token = response[RESPONSE_HEADER_SIZE:].strip(b"\x00 \t\r\n")
    if not _TOKEN.fullmatch(challenge_token):
        raise InvalidResponse(f"challenge token is not a number: {challenge_token!r}", "token")

    token = int(challenge_token)
    if not -(2**31) <= token <= 0xFFFFFFFF:
        raise InvalidResponse(f"challenge token out of 32-bit range: {token}", "token")
    return token & 0xFFFFFFFF


def query(target: ResolvedAddress, timeout: float = DEFAULT_TIMEOUT) -> QueryResult:
    """
    Method for querying a Minecraft Java server using the full stat Query protocol.

    protocol:
      send handshake request
      receive challenge token
      send full stat request
      receive status data
    """
    family = socket.AF_INET6 if ":" in target.ip else socket.AF_INET

    with contextlib.closing(bind_socket(family)) as sock:
        sock.settimeout(timeout)

        # handshake packet: magic, type 9, session id, padded to 11 bytes
        handshake_request = create_request(HANDSHAKE_TYPE).ljust(HANDSHAKE_REQUEST_SIZE, b"\x00")
        token = parse_challenge_token(exchange(sock, handshake_request, target))
        logger.debug(f"Received challenge token {token} from {target.ip}:{target.port}")

        # full stat request packet:
        #   contains challenge token (received during the handshake)
        #   contains 0x00 0x00 0x00 0x00 as padding (a basic stat request does not include these bytes)
        stat_request = create_request(STAT_TYPE, struct.pack(">I", token) + b"\x00\x00\x00\x00")
        raw_res = exchange(sock, stat_request, target)

    return parse_query_response(raw_res)
