"""Tests for host parsing."""

from __future__ import annotations

import pytest

from aerokv.errors import ConfigurationError
from aerokv.host import Host


class TestHost:
    """Tests for Host.parse and Host.parse_list."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("localhost", Host("localhost", 3000)),
            ("10.0.0.1:3100", Host("10.0.0.1", 3100)),
            (" db1:4000 ", Host("db1", 4000)),
            ("[::1]:3000", Host("::1", 3000)),
            ("[fe80::1]", Host("fe80::1", 3000)),
            ("::1", Host("::1", 3000)),
        ],
    )
    def test_parse(self, text, expected) -> None:
        assert Host.parse(text) == expected

    @pytest.mark.parametrize("text", ["", "db1:port", "db1:0", "db1:70000", "[::1", "[::1]x"])
    def test_invalid(self, text) -> None:
        with pytest.raises(ConfigurationError):
            Host.parse(text)

    def test_parse_list(self) -> None:
        assert Host.parse_list("a:1, b ,,c:3") == [Host("a", 1), Host("b", 3000), Host("c", 3)]

    def test_str(self) -> None:
        assert str(Host("db1", 3000)) == "db1:3000"
        assert str(Host("::1", 3000)) == "[::1]:3000"
