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
mcserverstatus - The Minecraft Java server status client.

    >>> import mcserverstatus
    >>> result = mcserverstatus.get_server_status("example.com")
    >>> print(result.players, result.version, result.latency)

Every function accepts an address as "host[:port]", a host plus an explicit port, or an `Address`.
"""
from . import pinger
from . import fullstat
from .checker import Checker
from .connection import DEFAULT_TIMEOUT
from .errors import (
    AddressSyntaxError,
    CommunicationError,
    ConnectionFailed,
    ConnStatus,
    InvalidResponse,
    MangledResponse,
    ServerStatusError,
    VarIntTooLarge,
)
from .models import (
    DEFAULT_PORT,
    Address,
    Description,
    Player,
    Players,
    PlayersList,
    PlayersStatus,
    PingResult,
    QueryResult,
    ServerStatus,
    StatusResult,
    Version,
)
from .pinger import PingProtocol
from .resolver import ResolvedAddress, resolve

VERSION = "1.0.0"
"""The mcserverstatus version"""

__all__ = [
    "DEFAULT_PORT",
    "DEFAULT_TIMEOUT",
    "Address",
    "AddressSyntaxError",
    "Checker",
    "CommunicationError",
    "ConnStatus",
    "ConnectionFailed",
    "Description",
    "InvalidResponse",
    "MangledResponse",
    "PingProtocol",
    "PingResult",
    "Player",
    "Players",
    "PlayersList",
    "PlayersStatus",
    "QueryResult",
    "ResolvedAddress",
    "ServerStatus",
    "ServerStatusError",
    "StatusResult",
    "VarIntTooLarge",
    "Version",
    "get_server",
    "get_server_status",
    "ping",
    "query",
    "to_address",
]


def to_address(address: str | Address, port: int | None = None) -> Address:
    """
    :param address: "host[:port]" text, a bare host when `port` is given, or an `Address`
    :param port: optional port, overrides the one in `address`
    :raises AddressSyntaxError: if the address is syntactically invalid
    """
    if isinstance(address, Address):
        return address if port is None else Address.of(address.host, port)
    if port is None:
        return Address.parse(address)
    return Address.of(address, port)


def ping(
    address: str | Address,
    port: int | None = None,
    *,
    protocol: PingProtocol = PingProtocol.JSON,
    timeout: float = DEFAULT_TIMEOUT,
    resolve_srv: bool = True,
) -> int:
    """
    Ping a Minecraft server.

    :return: the latency in milliseconds determined by the ping from this machine to the server and back
    :raises AddressSyntaxError: if the address is syntactically invalid
    :raises ServerStatusError: if an error occurs connecting or communicating with the server
    """
    return pinger.ping(resolve(to_address(address, port), resolve_srv), protocol, timeout)


def get_server(
    address: str | Address,
    port: int | None = None,
    *,
    protocol: PingProtocol = PingProtocol.JSON,
    timeout: float = DEFAULT_TIMEOUT,
    resolve_srv: bool = True,
) -> ServerStatus:
    """
    Retrieve information on a Minecraft server.

    This is like `get_server_status()` but skips the latency measurement,
    so that only mostly static information is retrieved.
    """
    return pinger.get_server(resolve(to_address(address, port), resolve_srv), protocol, timeout)


def get_server_status(
    address: str | Address,
    port: int | None = None,
    *,
    protocol: PingProtocol = PingProtocol.JSON,
    timeout: float = DEFAULT_TIMEOUT,
    resolve_srv: bool = True,
) -> PingResult:
    """
    Retrieve information on a Minecraft server including its status and the ping latency.

    See https://minecraft.wiki/w/Java_Edition_protocol/Server_List_Ping
    """
    return pinger.get_server_status(resolve(to_address(address, port), resolve_srv), protocol, timeout)


def query(address: str | Address, port: int | None = None, *, timeout: float = DEFAULT_TIMEOUT) -> QueryResult:
    """
    Retrieve detailed information on a Minecraft server that has querying enabled.

    Note: The Query service must be explicitly enabled by the Minecraft server for this to work.
    The query port is never looked up through SRV records.
    """
    return fullstat.query(resolve(to_address(address, port), resolve_srv=False), timeout)
