"""Tests for the aerokv-info command line."""

from __future__ import annotations

import socketserver
import struct
import threading

import orjson
import pytest
from click.testing import CliRunner

from aerokv.cli.info import cli

VALUES = {"node": "BB9", "build": "5.1.0", "replicas-master": "test:0;test:1;bar:7\n"}


class _InfoHandler(socketserver.BaseRequestHandler):
    def handle(self) -> None:
        while True:
            header = self._read(8)
            if header is None:
                return
            size = struct.unpack(">Q", header)[0] & ((1 << 48) - 1)
            body = self._read(size) or b""
            names = [name for name in body.decode("utf-8").split("\n") if name]
            reply = "".join(
                f"{name}\t{VALUES[name]}\n" if name in VALUES else f"{name}\n" for name in names
            ).encode("utf-8")
            self.request.sendall(struct.pack(">Q", (2 << 56) | (1 << 48) | len(reply)) + reply)

    def _read(self, size: int):
        data = b""
        while len(data) < size:
            chunk = self.request.recv(size - len(data))
            if not chunk:
                return None
            data += chunk
        return data


@pytest.fixture
def server_address():
    server = socketserver.ThreadingTCPServer(("127.0.0.1", 0), _InfoHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield "127.0.0.1:%d" % server.server_address[1]
    finally:
        server.shutdown()
        server.server_close()


class TestInfoCli:
    """Tests for the node and partitions commands."""

    def test_node(self, server_address) -> None:
        result = CliRunner().invoke(cli, ["node", "--host", server_address])
        assert result.exit_code == 0, result.output
        data = orjson.loads(result.output)
        assert data["name"] == "BB9"
        assert data["build"] == "5.1.0"
        assert data["new_info"] is True
        assert data["address"] == server_address

    def test_partitions(self, server_address) -> None:
        result = CliRunner().invoke(cli, ["partitions", "--host", server_address])
        assert result.exit_code == 0, result.output
        data = orjson.loads(result.output)
        assert data == {
            "bar": {"owned": 1, "total": 4096},
            "test": {"owned": 2, "total": 4096},
        }

    def test_node_without_name(self, server_address, monkeypatch) -> None:
        monkeypatch.delitem(VALUES, "node")
        result = CliRunner().invoke(cli, ["node", "--host", server_address])
        assert result.exit_code == 1
