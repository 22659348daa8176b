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
import asyncio
import functools
from collections.abc import Iterable

from . import fullstat, pinger
from .connection import DEFAULT_TIMEOUT
from .errors import ServerStatusError
from .models import Address, PingResult, QueryResult, StatusResult
from .pinger import PingProtocol
from .resolver import ResolvedAddress, resolve


class Checker:
    def __init__(self, address: str | Address, port: int = 0, timeout: float = DEFAULT_TIMEOUT):
        """Initializes Checker with given address, port, and timeout.

        Args:
            address (str | Address): The address of the Minecraft server, "host[:port]" or an `Address`.
            port (int, optional): The port of the server. Defaults to 0. '0' means the port in `address` or 25565.
            timeout (float, optional): The socket timeout for every exchange. Defaults to 6.
        """
        if isinstance(address, Address):
            self.address = address if not port else Address.of(address.host, port)
        elif port:
            self.address = Address.of(address, port)
        else:
            self.address = Address.parse(address)
        self.timeout = timeout

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    async def resolve(self, resolve_srv: bool = True) -> ResolvedAddress:
        return await self._run(resolve, self.address, resolve_srv)

    async def check(self, protocol: PingProtocol = PingProtocol.JSON) -> PingResult:
        """
        异步函数，使用指定的 SLP 协议获取服务器状态和延迟。

        参数:
        - protocol (PingProtocol): 使用的协议，默认为 JSON。

        返回:
        - PingResult: 服务器状态与延迟。
        """
        target = await self.resolve()
        return await self._run(pinger.get_server_status, target, protocol, self.timeout)

    async def query(self) -> QueryResult:
        """
        异步函数，使用 Query 协议获取服务器的详细信息。服务器需要开启 "enable-query=true"。
        """
        target = await self.resolve(resolve_srv=False)
        return await self._run(fullstat.query, target, self.timeout)

    async def check_all(
        self, protocols: Iterable[PingProtocol] = tuple(PingProtocol), include_query: bool = False
    ) -> list[StatusResult | ServerStatusError]:
        """
        Run several exchanges concurrently, each on its own socket.

        Failed exchanges are returned as their `ServerStatusError` in place of a result,
        in the same order as the requested protocols (the query result comes last).
        """
        coroutines = [self.check(protocol) for protocol in protocols]
        if include_query:
            coroutines.append(self.query())

        results = await asyncio.gather(*coroutines, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, ServerStatusError):
                raise result
        return results
