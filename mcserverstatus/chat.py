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
Conversion between JSON chat components and the legacy `§` formatting codes.

Only what is needed to turn a server description into both representations is
implemented here; hover/click events and translations are passed through untouched.

See https://minecraft.wiki/w/Formatting_codes and https://minecraft.wiki/w/Raw_JSON_text_format
"""
import re

SECTION_SIGN = "§"

COLOR_CODES = {
    "black": "0",
    "dark_blue": "1",
    "dark_green": "2",
    "dark_aqua": "3",
    "dark_red": "4",
    "dark_purple": "5",
    "gold": "6",
    "gray": "7",
    "dark_gray": "8",
    "blue": "9",
    "green": "a",
    "aqua": "b",
    "red": "c",
    "light_purple": "d",
    "yellow": "e",
    "white": "f",
}

FORMAT_CODES = {
    "obfuscated": "k",
    "bold": "l",
    "strikethrough": "m",
    "underlined": "n",
    "italic": "o",
}

RESET_CODE = "r"

_CODE_COLORS = {code: name for name, code in COLOR_CODES.items()}
_CODE_FORMATS = {code: name for name, code in FORMAT_CODES.items()}


def strip_formatting(raw_motd: str | dict | list) -> str:
    """
    Function for stripping all formatting codes from a motd. Supports Json Chat components (as dict) and
    the legacy formatting codes.

    :param raw_motd: The raw MOTD, either as a string or dict (from "json.loads()")
    """
    stripped_motd = ""

    if isinstance(raw_motd, str):
        stripped_motd = re.sub(r"§.", "", raw_motd)

    elif isinstance(raw_motd, list):
        for sub in raw_motd:
            stripped_motd += strip_formatting(sub)

    elif isinstance(raw_motd, dict):
        stripped_motd = strip_formatting(raw_motd.get("text", ""))

        if raw_motd.get("extra"):
            for sub in raw_motd["extra"]:
                stripped_motd += strip_formatting(sub)

    return stripped_motd


def to_legacy_text(component: str | dict | list, inherited: dict | None = None) -> str:
    """
    Render a chat component in the legacy text format.

    Every text segment is preceded by the formatting codes in effect for it, child
    components inherit the style of their parent. Unknown colors (e.g. hex colors) are dropped.

    :param component: the component, as returned by `json.loads()`
    :param inherited: style inherited from the parent component
    """
    style = dict(inherited or {})

    if isinstance(component, str):
        return _render(component, style)
    if isinstance(component, list):
        return "".join(to_legacy_text(sub, style) for sub in component)
    if not isinstance(component, dict):
        return ""

    if "color" in component:
        style["color"] = component["color"]
    for name in FORMAT_CODES:
        if name in component:
            style[name] = bool(component[name])

    legacy = _render(component.get("text", ""), style)
    for sub in component.get("extra") or ():
        legacy += to_legacy_text(sub, style)
    return legacy


def _render(text, style: dict) -> str:
    if not isinstance(text, str) or not text:
        return ""

    codes = ""
    color = style.get("color")
    # hex colors and malformed values have no legacy code
    if isinstance(color, str) and color in COLOR_CODES:
        codes += SECTION_SIGN + COLOR_CODES[color]
    for name, code in FORMAT_CODES.items():
        if style.get(name):
            codes += SECTION_SIGN + code
    return codes + text


def from_legacy_text(text: str) -> dict:
    """
    Build a chat component from a text with legacy formatting codes.

    A color code resets all formats, like the vanilla client does.
    """
    extra = []
    style: dict = {}
    segment = ""

    def flush():
        nonlocal segment
        if segment:
            extra.append({"text": segment, **style})
            segment = ""

    index = 0
    while index < len(text):
        char = text[index]
        code = text[index + 1].lower() if index + 1 < len(text) else ""
        if char == SECTION_SIGN and (code in _CODE_COLORS or code in _CODE_FORMATS or code == RESET_CODE):
            flush()
            if code in _CODE_COLORS:
                style = {"color": _CODE_COLORS[code]}
            elif code in _CODE_FORMATS:
                style = {**style, _CODE_FORMATS[code]: True}
            else:
                style = {}
            index += 2
            continue
        segment += char
        index += 1
    flush()

    if len(extra) == 1 and set(extra[0]) == {"text"}:
        return extra[0]
    return {"text": "", "extra": extra}
