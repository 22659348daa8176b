"""
Tests for the response decoders
"""
import json
import uuid

import pytest

from conftest import MINIMAL_STATUS, full_stat_response
from mcserverstatus.errors import ConnStatus, InvalidResponse
from mcserverstatus.models import Address, Description, PlayersList, PlayersStatus, Version
from mcserverstatus.parser import (
    parse_beta_response,
    parse_int,
    parse_json_response,
    parse_legacy_response,
    parse_player_id,
    parse_plugins,
    parse_query_response,
)

ADDRESS = Address.parse("example.com")


def status_json(**overrides) -> str:
    body = json.loads(MINIMAL_STATUS)
    body.update(overrides)
    return json.dumps({key: value for key, value in body.items() if value is not None})


class TestJsonResponse:
    def test_minimal(self):
        status = parse_json_response(MINIMAL_STATUS, ADDRESS)
        assert status.address == ADDRESS
        assert status.description.text == "A Server"
        assert status.players == PlayersStatus(20, 5)
        assert status.version == Version("1.12", 335)
        assert status.favicon is None

    def test_description_component(self):
        status = parse_json_response(
            status_json(description={"text": "A ", "extra": [{"text": "Server", "color": "green"}]}), ADDRESS
        )
        assert status.description.text == "A §aServer"
        assert status.description.stripped_text == "A Server"
        assert status.description.as_component()["extra"][0]["color"] == "green"

    def test_sample(self):
        status = parse_json_response(
            status_json(
                players={
                    "max": 20,
                    "online": 2,
                    "sample": [
                        {"id": "069a79f4-44e9-4726-a5be-fca90e38aaf5", "name": "Notch"},
                        {"id": "853c80ef3c3749fdaa49938b674adae6", "name": "jeb_"},
                    ],
                }
            ),
            ADDRESS,
        )
        assert [player.name for player in status.players.sample] == ["Notch", "jeb_"]
        assert status.players.sample[1].id == uuid.UUID("853c80ef-3c37-49fd-aa49-938b674adae6")

    def test_favicon(self):
        status = parse_json_response(status_json(favicon="data:image/png;base64,iVBORw0KGgo="), ADDRESS)
        assert status.favicon_bytes() == b"\x89PNG\r\n\x1a\n"

    def test_unknown_fields_ignored(self):
        status = parse_json_response(status_json(modinfo={"type": "FML"}, enforcesSecureChat=True), ADDRESS)
        assert status == parse_json_response(MINIMAL_STATUS, ADDRESS)

    def test_same_payload_same_value(self):
        assert parse_json_response(MINIMAL_STATUS, ADDRESS) == parse_json_response(MINIMAL_STATUS, ADDRESS)

    @pytest.mark.parametrize("field", ["description", "players", "version"])
    def test_missing_field(self, field):
        with pytest.raises(InvalidResponse) as exc_info:
            parse_json_response(status_json(**{field: None}), ADDRESS)
        assert exc_info.value.field == field
        assert f"missing required field '{field}'" in str(exc_info.value)
        assert exc_info.value.status is ConnStatus.UNKNOWN

    @pytest.mark.parametrize(
        "players, field",
        [
            ({"max": "20", "online": 5}, "players.max"),
            ({"max": True, "online": 5}, "players.max"),
            ({"max": 20}, "players.online"),
            ({"max": 20, "online": 5.5}, "players.online"),
            ({"max": 20, "online": 5, "sample": {}}, "players.sample"),
            ({"max": 20, "online": 5, "sample": [{"name": "Notch"}]}, "players.sample[0].id"),
            ({"max": 20, "online": 5, "sample": [{"id": "not-a-uuid"}]}, "players.sample[0].id"),
            ({"max": -1, "online": 5}, "players.max"),
        ],
    )
    def test_invalid_players(self, players, field):
        with pytest.raises(InvalidResponse) as exc_info:
            parse_json_response(status_json(players=players), ADDRESS)
        assert exc_info.value.field == field

    def test_type_mismatch_message(self):
        with pytest.raises(InvalidResponse, match="field 'players.max' must be integer, got string"):
            parse_json_response(status_json(players={"max": "20", "online": 5}), ADDRESS)

    @pytest.mark.parametrize(
        "description, field",
        [
            ({"text": "x", "color": ["red"]}, "description.color"),
            ({"text": "x", "extra": [{"text": "y", "color": 5}]}, "description.extra[0].color"),
            ({"text": "x", "extra": [{"text": "y", "extra": [7]}]}, "description.extra[0].extra[0]"),
            ({"text": ["x"]}, "description.text"),
            ({"text": "x", "extra": "y"}, "description.extra"),
        ],
    )
    def test_invalid_description_component(self, description, field):
        with pytest.raises(InvalidResponse) as exc_info:
            parse_json_response(status_json(description=description), ADDRESS)
        assert exc_info.value.field == field

    def test_description_with_hex_color(self):
        status = parse_json_response(status_json(description={"text": "x", "color": "#ff0000"}), ADDRESS)
        assert status.description.text == "x"

    def test_invalid_description(self):
        with pytest.raises(InvalidResponse) as exc_info:
            parse_json_response(status_json(description=42), ADDRESS)
        assert exc_info.value.field == "description"

    def test_invalid_version(self):
        with pytest.raises(InvalidResponse) as exc_info:
            parse_json_response(status_json(version={"name": "1.12"}), ADDRESS)
        assert exc_info.value.field == "version.protocol"

    @pytest.mark.parametrize("payload", ["", "{", "not json", "[]"])
    def test_not_a_status(self, payload):
        with pytest.raises(InvalidResponse):
            parse_json_response(payload, ADDRESS)


class TestParseInt:
    @pytest.mark.parametrize(
        "text, value", [("0", 0), ("+20", 20), ("-1", -1), ("2147483647", 2**31 - 1), ("-2147483648", -(2**31))]
    )
    def test_valid(self, text, value):
        assert parse_int(text, "online") == value

    @pytest.mark.parametrize("text", ["2147483648", "-2147483649", "99999999999", "", "1.5", " 1"])
    def test_invalid(self, text):
        with pytest.raises(InvalidResponse) as exc_info:
            parse_int(text, "online")
        assert exc_info.value.field == "online"


class TestPlayerId:
    def test_undashed(self):
        assert parse_player_id("069a79f444e94726a5befca90e38aaf5", "id") == uuid.UUID(
            "069a79f4-44e9-4726-a5be-fca90e38aaf5"
        )

    @pytest.mark.parametrize("raw_id", ["", "069a79f4", "069a79f4-44e9-4726-a5be-fca90e38aaf", "g" * 32])
    def test_invalid(self, raw_id):
        with pytest.raises(InvalidResponse):
            parse_player_id(raw_id, "id")


class TestLegacyResponse:
    def test_parse(self):
        status = parse_legacy_response("§1\x0047\x001.4.7\x00A Server\x005\x0020", ADDRESS)
        assert status.description == Description("A Server")
        assert status.players == PlayersStatus(20, 5)
        assert status.version == Version("1.4.7", 47)
        assert status.favicon is None

    def test_trailing_nul(self):
        status = parse_legacy_response("§1\x0047\x001.4.7\x00A Server\x005\x0020\x00", ADDRESS)
        assert status.players.max == 20

    def test_empty_motd(self):
        assert parse_legacy_response("§1\x0047\x001.4.7\x00\x005\x0020", ADDRESS).description.text == ""

    def test_too_few_fields(self):
        with pytest.raises(InvalidResponse, match="expected 5 fields, got 4"):
            parse_legacy_response("§1\x0047\x001.4.7\x00A Server\x005", ADDRESS)

    @pytest.mark.parametrize(
        "payload",
        ["A Server§5§20", "§1junk\x0047\x001.4.7\x00A Server\x005\x0020", "§2\x0047\x001.4.7\x00A Server\x005\x0020"],
    )
    def test_wrong_prefix(self, payload):
        with pytest.raises(InvalidResponse) as exc_info:
            parse_legacy_response(payload, ADDRESS)
        assert exc_info.value.field == "prefix"

    def test_count_out_of_range(self):
        with pytest.raises(InvalidResponse) as exc_info:
            parse_legacy_response("§1\x0047\x001.4.7\x00A Server\x005\x0099999999999", ADDRESS)
        assert exc_info.value.field == "max"

    @pytest.mark.parametrize(
        "payload, field",
        [
            ("§1\x00x\x001.4.7\x00A Server\x005\x0020", "protocol"),
            ("§1\x0047\x001.4.7\x00A Server\x00five\x0020", "online"),
            ("§1\x0047\x001.4.7\x00A Server\x005\x00-", "max"),
        ],
    )
    def test_not_a_number(self, payload, field):
        with pytest.raises(InvalidResponse) as exc_info:
            parse_legacy_response(payload, ADDRESS)
        assert exc_info.value.field == field


class TestBetaResponse:
    def test_parse(self):
        status = parse_beta_response("A Server§5§20", ADDRESS)
        assert status.description.text == "A Server"
        assert status.players == PlayersStatus(20, 5)
        assert status.version is None

    def test_motd_with_separator(self):
        status = parse_beta_response("§aA Server§5§20", ADDRESS)
        assert status.description.text == "§aA Server"
        assert status.description.stripped_text == "A Server"

    @pytest.mark.parametrize("payload", ["Protocol error", "A Server§20", ""])
    def test_too_few_fields(self, payload):
        with pytest.raises(InvalidResponse):
            parse_beta_response(payload, ADDRESS)

    def test_not_a_number(self):
        with pytest.raises(InvalidResponse) as exc_info:
            parse_beta_response("A Server§§20", ADDRESS)
        assert exc_info.value.field == "online"


class TestQueryResponse:
    def test_parse(self):
        result = parse_query_response(full_stat_response())
        assert result.address == Address("127.0.0.1", 25565)
        assert result.description.text == "A Minecraft Server"
        assert result.version == Version("1.2.5", 0)
        assert result.map_name == "world"
        assert result.server_type == "CraftBukkit"
        assert result.plugins == ("WorldEdit 5.3", "CommandBook 2.1")
        assert result.players == PlayersList(20, 2, ("Notch", "jeb_"))

    def test_formatted_motd(self):
        result = parse_query_response(full_stat_response(hostname=b"\xa7aGreen \xa7lBold"))
        assert result.description.text == "§aGreen §lBold"
        assert result.description.stripped_text == "Green Bold"

    def test_count_out_of_range(self):
        with pytest.raises(InvalidResponse) as exc_info:
            parse_query_response(full_stat_response(numplayers=2**31))
        assert exc_info.value.field == "numplayers"

    def test_no_players(self):
        result = parse_query_response(full_stat_response(players=()))
        assert result.players.count == 0
        assert result.players.names == ()

    def test_vanilla_plugins(self):
        result = parse_query_response(full_stat_response(plugins=""))
        assert result.server_type == ""
        assert result.plugins == ()

    def test_ipv6_host(self):
        assert parse_query_response(full_stat_response(hostip="::1")).address.host == "::1"

    def test_non_numeric_count(self):
        with pytest.raises(InvalidResponse) as exc_info:
            parse_query_response(full_stat_response(numplayers="many"))
        assert exc_info.value.field == "numplayers"

    def test_negative_count(self):
        with pytest.raises(InvalidResponse):
            parse_query_response(full_stat_response(numplayers=-1))

    def test_invalid_address(self):
        with pytest.raises(InvalidResponse) as exc_info:
            parse_query_response(full_stat_response(hostip=""))
        assert exc_info.value.field == "hostip"

    def test_truncated(self):
        with pytest.raises(InvalidResponse, match="fields"):
            parse_query_response(full_stat_response()[:60])


@pytest.mark.parametrize(
    "raw, server_type, plugins",
    [
        ("", "", []),
        ("CraftBukkit on Bukkit 1.2.5-R4.0: WorldEdit 5.3; CommandBook 2.1",
         "CraftBukkit on Bukkit 1.2.5-R4.0", ["WorldEdit 5.3", "CommandBook 2.1"]),
        ("CraftBukkit on Bukkit 1.2.5-R4.0", "", ["CraftBukkit on Bukkit 1.2.5-R4.0"]),
        ("Paper: ", "Paper", []),
    ],
)
def test_parse_plugins(raw, server_type, plugins):
    assert parse_plugins(raw) == (server_type, plugins)
