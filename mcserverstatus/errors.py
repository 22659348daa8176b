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
from enum import Enum


class ConnStatus(Enum):
    """
    Contains the possible reasons a status request did not succeed.

    - `CONNFAIL`: The socket to the server could not be established. Server offline, wrong hostname or port?
    - `TIMEOUT`: The connection timed out. (Server under too much load? Firewall rules OK?)
    - `UNKNOWN`: The connection was established, but the server sent something we could not understand.
    """

    def __str__(self) -> str:
        return str(self.name)

    CONNFAIL = -1
    """The socket to the server could not be established. (Server offline, wrong hostname or port?)"""

    TIMEOUT = -2
    """The connection timed out. (Server under too much load? Firewall rules OK?)"""

    UNKNOWN = -3
    """The connection was established, but the server spoke an unknown/unsupported protocol."""


class AddressSyntaxError(ValueError):
    """Raised when a server address is syntactically invalid."""

    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"{reason}: {address!r}")
        self.address = address
        self.reason = reason


class ServerStatusError(Exception):
    """Base class for every error raised while talking to a server."""

    default_status = ConnStatus.UNKNOWN

    def __init__(self, message: str, status: ConnStatus | None = None) -> None:
        super().__init__(message)
        self.status: ConnStatus = status or self.default_status


class ConnectionFailed(ServerStatusError):
    """The connection to the server could not be established."""

    default_status = ConnStatus.CONNFAIL


class CommunicationError(ServerStatusError):
    """Reading from or writing to an established connection failed."""

    default_status = ConnStatus.CONNFAIL


class InvalidResponse(ServerStatusError):
    """
    The server answered, but the answer does not follow the protocol.

    :param reason: human-readable description of what is wrong
    :param field: the offending response field, if the error concerns one
    """

    def __init__(self, reason: str, field: str | None = None) -> None:
        super().__init__(f"Invalid server response: {reason}")
        self.reason = reason
        self.field = field


class MangledResponse(InvalidResponse):
    """The server echoed something other than what was sent."""


class VarIntTooLarge(InvalidResponse):
    def __init__(self) -> None:
        super().__init__("VarInt too large")
