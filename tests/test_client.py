"""Tests for client configuration, seeding and partition refresh."""

from __future__ import annotations

import pytest

from aerokv.client import AeroKVClient, ClientBuilder, ClientConfig, Node
from aerokv.errors import ConfigurationError, ConnectionError
from aerokv.host import Host
from aerokv.node_validator import NodeIdentity
from aerokv.value import Value, get_encoding

DIGEST_P0 = b"\x00" * 20
DIGEST_P1 = b"\x01" + b"\x00" * 19
DIGEST_P2 = b"\x02" + b"\x00" * 19


class TestClientConfig:
    """Tests for configuration validation."""

    def test_defaults_are_valid(self) -> None:
        ClientConfig().validate()

    def test_requires_seeds(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            ClientConfig(seeds=[]).validate()
        assert exc_info.value.field == "seeds"

    def test_requires_positive_timeout(self) -> None:
        with pytest.raises(ConfigurationError):
            ClientConfig(timeout_ms=0).validate()

    def test_rejects_unknown_encoding(self) -> None:
        with pytest.raises(ConfigurationError):
            ClientConfig(encoding="klingon").validate()

    def test_requires_partition_key(self) -> None:
        with pytest.raises(ConfigurationError):
            ClientConfig(partition_info_key="").validate()


class TestClientBuilder:
    """Tests for the fluent builder."""

    def test_build(self) -> None:
        client = (
            ClientBuilder()
            .seeds("10.0.0.1:3100", Host("10.0.0.2"))
            .timeout(250)
            .encoding("latin-1")
            .partition_info_key("replicas-master")
            .build()
        )
        assert client.config.seeds == [Host("10.0.0.1", 3100), Host("10.0.0.2", 3000)]
        assert client.config.timeout_ms == 250
        assert get_encoding() == "latin-1"
        assert Value.of("é").to_bytes() == b"\xe9"

    def test_seed_list_string_expands(self) -> None:
        client = ClientBuilder().seeds("10.0.0.1:3100, 10.0.0.2", Host("10.0.0.3", 4000)).build()
        assert client.config.seeds == [
            Host("10.0.0.1", 3100),
            Host("10.0.0.2", 3000),
            Host("10.0.0.3", 4000),
        ]

    def test_blank_seed_list_fails_validation(self) -> None:
        with pytest.raises(ConfigurationError):
            ClientBuilder().seeds(" , ").build()

    def test_invalid_config_rejected_at_build(self) -> None:
        with pytest.raises(ConfigurationError):
            ClientBuilder().timeout(-1).build()


class TestNode:
    """Tests for node construction from identities."""

    def test_from_identity(self) -> None:
        identity = NodeIdentity(
            name="BB9",
            supports_new_info=False,
            aliases=(Host("10.0.0.1"),),
            address=Host("10.0.0.1"),
        )
        node = Node.from_identity(identity)
        assert node.name == "BB9"
        assert node.host == Host("10.0.0.1")
        assert node.supports_new_info is False

    def test_unnamed_identity(self) -> None:
        with pytest.raises(ConnectionError):
            Node.from_identity(NodeIdentity())


class TestAeroKVClient:
    """End-to-end against a local info server."""

    @pytest.mark.asyncio
    async def test_connect_loads_partitions(self, info_server) -> None:
        values = {"node": "BB9", "build": "5.1.0", "replicas-master": "test:0;test:1\n"}
        async with info_server(values) as host:
            client = AeroKVClient(ClientConfig(seeds=[host]))
            async with client:
                assert [node.name for node in client.nodes] == ["BB9"]
                node = client.get_node("BB9")
                assert client.node_for("test", DIGEST_P0) is node
                assert client.node_for("test", DIGEST_P1) is node
                assert client.node_for("test", DIGEST_P2) is None
                assert client.node_for("other", DIGEST_P0) is None

            assert client.nodes == []
            assert client.partitions.namespaces() == []

    @pytest.mark.asyncio
    async def test_refresh_partitions(self, info_server) -> None:
        values = {"node": "BB9", "build": "5.1.0", "replicas-master": "test:2\n"}
        async with info_server(values) as host:
            client = AeroKVClient(ClientConfig(seeds=[host]))
            await client.connect()
            node = client.get_node("BB9")
            assert await client.refresh_partitions(node) == 1
            assert client.node_for("test", DIGEST_P2) is node
            await client.close()

    @pytest.mark.asyncio
    async def test_missing_partition_info_skips_refresh(self, info_server) -> None:
        async with info_server({"node": "BB9", "build": "5.1.0"}) as host:
            client = AeroKVClient(ClientConfig(seeds=[host]))
            await client.connect()
            assert client.get_node("BB9") is not None
            assert client.partitions.namespaces() == []

            with pytest.raises(ConnectionError):
                await client.refresh_partitions(client.get_node("BB9"))
            await client.close()

    @pytest.mark.asyncio
    async def test_no_seed_validates(self, info_server) -> None:
        async with info_server({"build": "5.1.0"}) as host:
            client = AeroKVClient(ClientConfig(seeds=[host]))
            with pytest.raises(ConnectionError):
                await client.connect()
