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
Strict decoders turning server payloads into `ServerStatus` / `QueryResult` values.

Every decoder raises `InvalidResponse` naming the offending field instead of guessing.
"""
import json
import re
import uuid

from .errors import AddressSyntaxError, InvalidResponse
from .models import (
    Address,
    Description,
    Player,
    PlayersList,
    PlayersStatus,
    QueryResult,
    ServerStatus,
    Version,
)

LEGACY_PREFIX = "§1"
LEGACY_FIELD_COUNT = 5
BETA_SEPARATOR = "§"
INT_MIN = -(2**31)
INT_MAX = 2**31 - 1

_INTEGER = re.compile(r"[-+]?[0-9]+")
_UUID = re.compile(r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}")
_UNDASHED_UUID = re.compile(r"([0-9a-fA-F]{8})([0-9a-fA-F]{4})([0-9a-fA-F]{4})([0-9a-fA-F]{4})([0-9a-fA-F]{12})")

_JSON_TYPE_NAMES = {
    dict: "object",
    list: "array",
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    type(None): "null",
}


def _type_name(value) -> str:
    return _JSON_TYPE_NAMES.get(type(value), type(value).__name__)


def _check_type(value, expected: type, path: str):
    # bool is a subclass of int, but `true` is not a player count
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise InvalidResponse(
            f"field '{path}' must be {_JSON_TYPE_NAMES[expected]}, got {_type_name(value)}", path
        )
    return value


def _require(obj: dict, key: str, expected: type, path: str):
    if key not in obj:
        raise InvalidResponse(f"missing required field '{path}'", path)
    return _check_type(obj[key], expected, path)


def _optional(obj: dict, key: str, expected: type, path: str, default=None):
    if obj.get(key) is None:
        return default
    return _check_type(obj[key], expected, path)


def parse_int(text: str, field: str) -> int:
    """Parse a signed 32-bit decimal integer."""
    if not _INTEGER.fullmatch(text):
        raise InvalidResponse(f"field '{field}' is not an integer: {text!r}", field)
    value = int(text)
    if not INT_MIN <= value <= INT_MAX:
        raise InvalidResponse(f"field '{field}' is out of 32-bit range: {text!r}", field)
    return value


def parse_player_id(raw_id: str, field: str) -> uuid.UUID:
    """
    Parse a player UUID, with or without dashes.

    :raises InvalidResponse: if the id is not 32 hex digits in either form
    """
    if len(raw_id) == 32:
        raw_id = _UNDASHED_UUID.sub(r"\1-\2-\3-\4-\5", raw_id)
    if not _UUID.fullmatch(raw_id):
        raise InvalidResponse(f"field '{field}' is not a valid UUID: {raw_id!r}", field)
    return uuid.UUID(raw_id)


def _check_component(component, path: str) -> None:
    if isinstance(component, str):
        return
    if isinstance(component, list):
        for index, sub in enumerate(component):
            _check_component(sub, f"{path}[{index}]")
        return
    _check_type(component, dict, path)
    _optional(component, "text", str, f"{path}.text")
    _optional(component, "color", str, f"{path}.color")
    for index, sub in enumerate(_optional(component, "extra", list, f"{path}.extra", [])):
        _check_component(sub, f"{path}.extra[{index}]")


def _parse_description(description) -> Description:
    if isinstance(description, str):
        return Description(description)
    if isinstance(description, dict):
        _check_component(description, "description")
        return Description.from_component(description)
    raise InvalidResponse(
        f"field 'description' must be string or object, got {_type_name(description)}", "description"
    )


def _parse_players(players: dict) -> PlayersStatus:
    max_players = _require(players, "max", int, "players.max")
    online = _require(players, "online", int, "players.online")

    # There may be a "sample" field in the "players" object that contains a sample list of online players
    sample = []
    for index, entry in enumerate(_optional(players, "sample", list, "players.sample", [])):
        path = f"players.sample[{index}]"
        _check_type(entry, dict, path)
        player_id = parse_player_id(_require(entry, "id", str, f"{path}.id"), f"{path}.id")
        name = _optional(entry, "name", str, f"{path}.name", "")
        sample.append(Player(player_id, name))

    if max_players < 0:
        raise InvalidResponse(f"field 'players.max' cannot be negative: {max_players}", "players.max")
    return PlayersStatus(max_players, online, tuple(sample))


def parse_json_response(payload: str, address: Address) -> ServerStatus:
    """
    Helper method for parsing the modern JSON-based SLP protocol.
    In use for Minecraft Java >= 1.7.

    :param payload: The JSON document, without header and string length
    :param address: The address the response was received from
    """
    try:
        payload_obj = json.loads(payload)
    except json.JSONDecodeError as e:
        raise InvalidResponse(f"status is not valid JSON: {e}") from e

    _check_type(payload_obj, dict, "response")

    # The motd might be a string directly, not a json object
    description = _parse_description(_require(payload_obj, "description", object, "description"))
    players = _parse_players(_require(payload_obj, "players", dict, "players"))

    version_obj = _require(payload_obj, "version", dict, "version")
    version = Version(
        _require(version_obj, "name", str, "version.name"),
        _require(version_obj, "protocol", int, "version.protocol"),
    )

    favicon = _optional(payload_obj, "favicon", str, "favicon")

    return ServerStatus(address, description, players, version, favicon)


def parse_legacy_response(payload: str, address: Address) -> ServerStatus:
    """
    Internal helper method for parsing the legacy SLP payload (legacy and extended legacy).

    This "payload" contains six fields delimited by a NUL character:
    - a fixed prefix '§1'
    - the protocol version
    - the server version
    - the MOTD
    - the online player count
    - the max player count

    :param payload: The decoded (UTF-16BE) legacy SLP payload
    """
    prefix, *payload_list = payload.rstrip("\x00").split("\x00")
    if prefix != LEGACY_PREFIX:
        raise InvalidResponse(f"expected prefix {LEGACY_PREFIX!r}, got {prefix!r}", "prefix")

    # Check for count of string parts, expected is 5 after the prefix for this protocol version
    if len(payload_list) != LEGACY_FIELD_COUNT:
        raise InvalidResponse(f"expected {LEGACY_FIELD_COUNT} fields, got {len(payload_list)}")

    protocol_version = parse_int(payload_list[0], "protocol")
    version = payload_list[1]
    motd = payload_list[2]
    current_players = parse_int(payload_list[3], "online")
    max_players = parse_int(payload_list[4], "max")

    if max_players < 0:
        raise InvalidResponse(f"field 'max' cannot be negative: {max_players}", "max")
    return ServerStatus(
        address,
        Description(motd),
        PlayersStatus(max_players, current_players),
        Version(version, protocol_version),
    )


def parse_beta_response(payload: str, address: Address) -> ServerStatus:
    """
    Parse the Beta 1.8 to Release 1.3 payload: the MOTD, the online and the max player count
    separated by '§'. The MOTD may contain '§' itself, so the separators are searched from the end.

    :param payload: The decoded (UTF-16BE) beta SLP payload
    """
    max_index = payload.rfind(BETA_SEPARATOR)
    online_index = payload.rfind(BETA_SEPARATOR, 0, max_index) if max_index > 0 else -1

    # Usually a lone string here is an error message, e.g. 'Protocol error'
    if online_index == -1:
        raise InvalidResponse(f"expected 3 fields separated by {BETA_SEPARATOR!r}: {payload!r}")

    motd = payload[:online_index]
    current_players = parse_int(payload[online_index + 1:max_index], "online")
    max_players = parse_int(payload[max_index + 1:], "max")

    if max_players < 0:
        raise InvalidResponse(f"field 'max' cannot be negative: {max_players}", "max")
    return ServerStatus(address, Description(motd), PlayersStatus(max_players, current_players))


QUERY_DESCRIPTION = 3
QUERY_VERSION = 9
QUERY_PLUGINS = 11
QUERY_MAP = 13
QUERY_ONLINE = 15
QUERY_MAX = 17
QUERY_PORT = 19
QUERY_IP = 21
QUERY_PLAYERS = 25


def parse_plugins(raw_plugins: str) -> tuple[str, list[str]]:
    """
    Split the "plugins" value of a full stat response.

    There may be information about the server software before the first ": ",
    example: "CraftBukkit on Bukkit 1.2.5-R4.0: WorldEdit 5.3; CommandBook 2.1"

    :return: the server type (empty if not present) and the plugin list
    """
    index = raw_plugins.find(": ")
    if index != -1:
        server_type, raw_plugins = raw_plugins[:index], raw_plugins[index + 2:]
    else:
        server_type = ""

    plugins = raw_plugins.split("; ") if raw_plugins else []
    return server_type, plugins


def parse_query_response(raw_res: bytes) -> QueryResult:
    """
    Helper method for parsing the response from a full stat request.

    The keys of the key/value section are not looked at, values are taken from fixed positions.
    See https://minecraft.wiki/w/Minecraft_Wiki:Projects/wiki.vg_merge/Query#Full_stat

    :param raw_res: the full datagram, including the type and session id header
    """
    # remove the padding and split into individual elements
    raw_stats = raw_res.strip(b"\x00").split(b"\x00")
    stats = [field.decode("utf-8", "replace") for field in raw_stats]

    if len(stats) <= QUERY_IP:
        raise InvalidResponse(f"full stat response has only {len(stats)} fields")

    server_type, plugins = parse_plugins(stats[QUERY_PLUGINS])

    current_players = parse_int(stats[QUERY_ONLINE], "numplayers")
    max_players = parse_int(stats[QUERY_MAX], "maxplayers")
    if current_players < 0 or max_players < 0:
        raise InvalidResponse(f"negative player count {current_players}/{max_players}", "numplayers")

    port = parse_int(stats[QUERY_PORT], "hostport")
    try:
        reported = Address.of(stats[QUERY_IP], port)
    except AddressSyntaxError as e:
        raise InvalidResponse(f"server responded with an invalid address: {e}", "hostip") from e

    status = ServerStatus(
        reported,
        # the motd is written one byte per character, '§' arrives as 0xA7
        Description(raw_stats[QUERY_DESCRIPTION].decode("iso_8859_1")),
        PlayersList(max_players, current_players, tuple(stats[QUERY_PLAYERS:])),
        # the protocol number is not part of the query response
        Version(stats[QUERY_VERSION], 0),
    )
    return QueryResult(status, stats[QUERY_MAP], server_type, tuple(plugins))
