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
VarInt helpers for the current Server List Ping protocol.

See https://minecraft.wiki/w/Minecraft_Wiki:Projects/wiki.vg_merge/Protocol#VarInt_and_VarLong
"""
import struct
from collections.abc import Callable

from .errors import InvalidResponse, VarIntTooLarge

MAX_VARINT_BYTES = 5
"""a VarInt never takes more than 5 bytes on the wire"""


def encode_varint(data: int) -> bytes:
    """Small helper method for packing a varint from an unsigned 32-bit int."""
    if not 0 <= data <= 0xFFFFFFFF:
        raise ValueError(f"The value {data} is too big to send in a varint")

    ordinal = b""

    while True:
        byte = data & 0x7F
        data >>= 7
        ordinal += struct.pack("B", byte | (0x80 if data > 0 else 0))

        if data == 0:
            break

    return ordinal


def read_varint(read_byte: Callable[[], int]) -> int:
    """
    Unpack a varint from a stream of single bytes.

    :param read_byte: callable returning the next byte as an int; it raises on its own when the stream ends
    :raises VarIntTooLarge: if 5 bytes were consumed without reaching the last group
    """
    data = 0
    for i in range(MAX_VARINT_BYTES):
        byte = read_byte()
        data |= (byte & 0x7F) << 7 * i

        if not byte & 0x80:
            return data

    raise VarIntTooLarge()


def decode_varint(buffer: bytes | bytearray, offset: int = 0) -> tuple[int, int]:
    """
    Unpack a varint from a buffer.

    :return: the value and the offset of the first byte after it
    """
    position = offset

    def next_byte() -> int:
        nonlocal position
        if position >= len(buffer):
            raise InvalidResponse("truncated VarInt")
        byte = buffer[position]
        position += 1
        return byte

    value = read_varint(next_byte)
    return value, position
