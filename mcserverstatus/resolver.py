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
Turns an `Address` into the host, IP and port the protocol engines talk to.

Java servers may publish a `_minecraft._tcp.<host>` SRV record pointing at the real host and port.
"""
import contextlib
import ipaddress
import logging
import socket
from typing import NamedTuple

import dns.exception
import dns.resolver
import idna

from .errors import ConnectionFailed
from .models import Address

logger = logging.getLogger(__name__)

SRV_SERVICE = "_minecraft._tcp"
DNS_TIMEOUT = 5
"""seconds to wait for a single DNS server"""
DNS_LIFETIME = 10
"""seconds to wait for the whole SRV lookup"""


class ResolvedAddress(NamedTuple):
    host: str
    """host name sent to the server in handshakes"""
    ip: str
    port: int

    @property
    def address(self) -> Address:
        return Address.of(self.host, self.port)


def is_ip(address: str) -> bool:
    """
    判断给定的地址是否为IPv4或IPv6地址。

    参数:
    address (str): 需要验证的地址。

    返回:
    bool: 如果地址为IP地址则返回True，否则返回False。
    """
    try:
        ipaddress.ip_address(address)
    except ValueError:
        return False
    return True


def to_ascii(host: str) -> str:
    """Encode an internationalized domain name with punycode, other hosts are returned as they are."""
    if is_ip(host) or host.isascii():
        return host
    try:
        return idna.encode(host, uts46=True).decode("ascii")
    except idna.IDNAError:
        return host


def lookup_srv(host: str) -> tuple[str, int] | None:
    """
    Look up the SRV record of a Minecraft server.

    Any DNS failure (no record, NXDOMAIN, timeout, no resolver configured) yields `None`.

    :return: the target host and port of the first record, or `None`
    """
    with contextlib.suppress(dns.exception.DNSException):
        resolver = dns.resolver.Resolver()
        resolver.timeout = DNS_TIMEOUT
        resolver.lifetime = DNS_LIFETIME

        srv_response = resolver.resolve(f"{SRV_SERVICE}.{to_ascii(host)}", "SRV")
        for rdata in srv_response:
            srv_address = str(rdata.target).rstrip(".")
            if srv_address:
                return srv_address, rdata.port
    return None


def resolve_ip(host: str, port: int) -> str:
    """
    :raises ConnectionFailed: if the host name cannot be resolved
    """
    if is_ip(host):
        return host
    try:
        infos = socket.getaddrinfo(to_ascii(host), port, type=socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        raise ConnectionFailed(f"unknown host {host}: {e}") from e
    return infos[0][4][0]


def resolve(address: Address, resolve_srv: bool = True) -> ResolvedAddress:
    """
    Resolve a server address.

    :param address: the address given by the user
    :param resolve_srv: look for a SRV record first (only meaningful for the TCP ping protocols)
    """
    host, port = address.host, address.port

    if resolve_srv and not is_ip(host):
        if srv := lookup_srv(host):
            logger.debug(f"SRV record for {host} points to {srv[0]}:{srv[1]}")
            host, port = srv[0].lower(), srv[1]

    ip = resolve_ip(host, port)
    logger.debug(f"Resolved {address} to {ip}:{port}")
    return ResolvedAddress(host, ip, port)
