"""Shared fixtures: a local info protocol server and codec state reset."""

from __future__ import annotations

import asyncio
import contextlib
import struct
from typing import AsyncIterator, Dict

import pytest

from aerokv.host import Host
from aerokv.value import set_encoding


@contextlib.asynccontextmanager
async def _info_server(values: Dict[str, str]) -> AsyncIterator[Host]:
    """Serve fixed info values on a random local port."""
    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            while True:
                header = await reader.readexactly(8)
                size = struct.unpack(">Q", header)[0] & ((1 << 48) - 1)
                body = (await reader.readexactly(size)).decode("utf-8")
                names = [name for name in body.split("\n") if name]

                reply = "".join(
                    f"{name}\t{values[name]}\n" if name in values else f"{name}\n"
                    for name in names
                ).encode("utf-8")
                writer.write(struct.pack(">Q", (2 << 56) | (1 << 48) | len(reply)) + reply)
                await writer.drain()
        except (asyncio.IncompleteReadError, ConnectionResetError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    host = Host("127.0.0.1", port)
    try:
        yield host
    finally:
        server.close()
        await server.wait_closed()


@pytest.fixture
def info_server():
    """Factory: ``async with info_server({"node": "A1"}) as host: ...``"""
    return _info_server


@pytest.fixture(autouse=True)
def _reset_encoding():
    yield
    set_encoding("utf-8")
