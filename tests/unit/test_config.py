"""
Unit tests for server configuration and the command line.
"""

import pytest

from minihttp.__main__ import build_parser, hello, main
from minihttp.config import ServerConfig, parse_address
from minihttp.http import Request, Response


class TestParseAddress:
    """Tests for "host:port" parsing."""

    def test_ipv4(self):
        assert parse_address("127.0.0.1:8080") == ("127.0.0.1", 8080)

    def test_hostname(self):
        assert parse_address("localhost:3000") == ("localhost", 3000)

    def test_empty_host(self):
        """Test that ":port" means every interface."""
        assert parse_address(":9000") == ("0.0.0.0", 9000)

    def test_ipv6(self):
        assert parse_address("[::1]:8080") == ("::1", 8080)

    @pytest.mark.parametrize("address", ["localhost", "localhost:", "host:http", "host:-1"])
    def test_invalid(self, address: str):
        with pytest.raises(ValueError):
            parse_address(address)


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults_valid(self):
        config = ServerConfig()
        config.validate()

        assert config.address == "127.0.0.1:8080"
        assert config.buffer_size == 1024

    def test_from_address(self):
        config = ServerConfig.from_address("0.0.0.0:3000", max_workers=32)

        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.max_workers == 32

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()

    @pytest.mark.parametrize("overrides", [
        {"port": 70000},
        {"port": -1},
        {"backlog": 0},
        {"buffer_size": 0},
        {"timeout": 0},
        {"keep_alive_timeout": 0},
        {"max_request_size": 10, "buffer_size": 1024},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"queue_size": 0},
        {"log_format": "xml"},
    ])
    def test_invalid_values(self, overrides: dict):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()


class TestCommandLine:
    """Tests for the python -m minihttp entry point."""

    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.address == "127.0.0.1:8080"
        assert args.workers == 4
        assert args.log_level == "INFO"
        assert args.log_format == "text"

    def test_options(self):
        args = build_parser().parse_args(["0.0.0.0:3000", "-w", "8", "--log-format", "json"])

        assert args.address == "0.0.0.0:3000"
        assert args.workers == 8
        assert args.log_format == "json"

    def test_bad_address_exit_code(self, capsys):
        assert main(["not-an-address"]) == 2
        assert "Error" in capsys.readouterr().err

    def test_hello_handler(self):
        request = Request(method="GET", url="/", path="/")
        response = hello(request, Response())

        assert response.status == 200
        assert response.body == "hello, world"
