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
The values produced by the ping and query engines.

All of them are frozen dataclasses, built once per exchange from the bytes the server sent.
"""
import base64
import json
import uuid
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from . import chat
from .errors import AddressSyntaxError

DEFAULT_PORT = 25565
"""default TCP port of Minecraft Java servers"""
MAX_HOST_NAME_LENGTH = 255


@dataclass(frozen=True)
class Address:
    """
    A syntactically valid Minecraft server address.

    Use `Address.parse("host:port")` or `Address.of(host, port)` instead of calling the constructor
    directly, they apply the same normalization (lowercase host, default port).
    """

    host: str
    port: int = DEFAULT_PORT

    def __post_init__(self) -> None:
        if not self.host:
            raise AddressSyntaxError(self.host, "host cannot be undefined")
        if len(self.host) > MAX_HOST_NAME_LENGTH:
            raise AddressSyntaxError(self.host, f"host cannot exceed {MAX_HOST_NAME_LENGTH} characters")
        if not 0 <= self.port <= 65535:
            raise AddressSyntaxError(f"{self.host}:{self.port}", "port out of range 0-65535")

    @classmethod
    def parse(cls, address: str) -> "Address":
        """
        Parse the host (or IP) and optional port number from an address like `example.com:25566`.

        :raises AddressSyntaxError: if the address is syntactically invalid
        """
        return cls._from_netloc(address.strip(), address)

    @classmethod
    def of(cls, host: str, port: int | None = None) -> "Address":
        """
        :param host: the host (or IP) of the Minecraft server
        :param port: the port of the Minecraft server, `None` or 0 for the default port
        :raises AddressSyntaxError: if the host or port is syntactically invalid
        """
        host = host.strip()
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        if port is None:
            return cls._from_netloc(host, host)
        if not 0 <= port <= 65535:
            raise AddressSyntaxError(f"{host}:{port}", "port out of range 0-65535")
        return cls._from_netloc(f"{host}:{port}", host)

    @classmethod
    def _from_netloc(cls, netloc: str, original: str) -> "Address":
        try:
            uri = urlsplit(f"mc://{netloc}")
            host = uri.hostname
            port = uri.port
        except ValueError as e:
            raise AddressSyntaxError(original, str(e)) from e

        if uri.path or uri.query or uri.fragment or uri.username is not None:
            raise AddressSyntaxError(original, "address may only contain a host and a port")
        if not host:
            raise AddressSyntaxError(original, "host cannot be undefined")
        if len(host) > MAX_HOST_NAME_LENGTH:
            raise AddressSyntaxError(original, f"host cannot exceed {MAX_HOST_NAME_LENGTH} characters")
        return cls(host.lower(), port or DEFAULT_PORT)

    def __str__(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port != DEFAULT_PORT:
            return f"{host}:{self.port}"
        return host


@dataclass(frozen=True)
class Description:
    """
    The server description (MOTD) in two formats: the legacy text with `§` formatting codes,
    and optionally the JSON chat component the server sent.
    """

    text: str = ""
    component_json: str | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_component(cls, component: dict | list | str) -> "Description":
        return cls(chat.to_legacy_text(component), json.dumps(component, ensure_ascii=False))

    @property
    def stripped_text(self) -> str:
        """message of the day, stripped of all formatting ("human-readable")"""
        return chat.strip_formatting(self.text)

    def as_component(self) -> dict:
        """
        :return: the description as a new chat component dict
        """
        if self.component_json is not None:
            return json.loads(self.component_json)
        return chat.from_legacy_text(self.text)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Players:
    """
    Basic player information. `max` may not be the real maximum if a server plugin manipulated the response.
    """

    max: int

    def __post_init__(self) -> None:
        if self.max < 0:
            raise ValueError("max cannot be less than 0")

    def __str__(self) -> str:
        return f"-/{self.max}"


@dataclass(frozen=True)
class Player:
    """A sample player from a ping response."""

    id: uuid.UUID
    name: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.id, uuid.UUID):
            raise TypeError("id must be a UUID")
        if self.name is None:
            object.__setattr__(self, "name", "")

    def __str__(self) -> str:
        if self.name:
            return f"{self.id}[{self.name}]"
        return str(self.id)


@dataclass(frozen=True)
class PlayersStatus(Players):
    """
    Player counts from a ping response plus a sample, possibly incomplete, of online players.
    The online count is whatever the server claims, it is not checked against `max`.
    """

    count: int = 0
    sample: tuple[Player, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "sample", tuple(self.sample))

    def __str__(self) -> str:
        return f"{self.count}/{self.max}"


@dataclass(frozen=True)
class PlayersList(Players):
    """Player counts from a query response plus the complete list of online player names."""

    count: int = 0
    names: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.count < 0:
            raise ValueError("count cannot be less than 0")
        object.__setattr__(self, "names", tuple(self.names))

    def __str__(self) -> str:
        return f"{self.count}/{self.max}"


@dataclass(frozen=True)
class Version:
    """
    Server version information. Both fields are easily modified by server plugins,
    `protocol` is 0 when unknown.
    """

    name: str
    protocol: int = 0

    def __str__(self) -> str:
        if self.protocol > 0:
            return f"{self.name}({self.protocol})"
        return self.name


@dataclass(frozen=True)
class ServerStatus:
    """
    Basic server information that is mostly static.

    `version` is `None` for beta servers, `favicon` is `None` for every legacy protocol.
    """

    address: Address
    description: Description
    players: Players
    version: Version | None = None
    favicon: str | None = field(default=None, repr=False)

    def favicon_bytes(self) -> bytes | None:
        """
        :return: the decoded favicon PNG, or `None` if the server has none
        """
        if not self.favicon:
            return None
        return base64.b64decode(self.favicon.split("base64,")[-1])

    @property
    def printable_favicon(self) -> str | None:
        if self.favicon is None:
            return None
        return self.favicon.split(",", 1)[0]

    def __repr__(self) -> str:
        return (
            f"ServerStatus(address={self.address!r}, description={self.description!r}, "
            f"players={self.players!r}, version={self.version!r}, favicon={self.printable_favicon!r})"
        )


@dataclass(frozen=True)
class PingResult:
    """A ping response: the server status and the measured latency in milliseconds (-1 if not measured)."""

    status: ServerStatus
    latency: int = -1

    @property
    def address(self) -> Address:
        return self.status.address

    @property
    def description(self) -> Description:
        return self.status.description

    @property
    def players(self) -> PlayersStatus:
        return self.status.players  # type: ignore[return-value]

    @property
    def version(self) -> Version | None:
        return self.status.version

    @property
    def favicon(self) -> str | None:
        return self.status.favicon


@dataclass(frozen=True)
class QueryResult:
    """A full-stat query response."""

    status: ServerStatus
    map_name: str = ""
    server_type: str = ""
    """software name and version, e.g. `CraftBukkit on Bukkit 1.2.5-R4.0`"""
    plugins: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "plugins", tuple(self.plugins))

    @property
    def address(self) -> Address:
        return self.status.address

    @property
    def description(self) -> Description:
        return self.status.description

    @property
    def players(self) -> PlayersList:
        return self.status.players  # type: ignore[return-value]

    @property
    def version(self) -> Version | None:
        return self.status.version


StatusResult = PingResult | QueryResult
