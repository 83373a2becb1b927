"""
Unit tests for server configuration and the command-line entry point.
"""

import pytest

from fluxdb.__main__ import build_config, build_parser
from fluxdb.config import ServerConfig


class TestServerConfig:

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 6379
        assert config.protocol == "resp"
        assert config.max_bulk_length == 512 * 1024 * 1024
        assert config.max_multibulk_length == 1024 * 1024
        config.validate()

    def test_runtime_settings_seed_the_config_store(self):
        settings = ServerConfig(host="127.0.0.1", port=7000).runtime_settings()

        assert settings == {
            "port": "7000",
            "bind": "127.0.0.1",
            "max_clients": "10000",
            "timeout": "0",
        }

    def test_port_zero_is_valid(self):
        ServerConfig(port=0).validate()

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 70000},
        {"protocol": "http"},
        {"log_format": "xml"},
        {"log_level": "LOUD"},
        {"max_bulk_length": 0},
        {"backlog": 0},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("FLUXDB_BIND", "127.0.0.1")
        monkeypatch.setenv("FLUXDB_PORT", "7001")
        monkeypatch.setenv("FLUXDB_PROTOCOL", "inline")
        monkeypatch.setenv("FLUXDB_LOG_FORMAT", "json")

        config = ServerConfig.from_env()

        assert config.host == "127.0.0.1"
        assert config.port == 7001
        assert config.protocol == "inline"
        assert config.log_format == "json"


class TestCommandLine:

    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("FLUXDB_PORT", "7001")
        monkeypatch.setenv("FLUXDB_BIND", "10.0.0.1")

        args = build_parser().parse_args(["--port", "7002"])
        config = build_config(args)

        assert config.port == 7002
        assert config.host == "10.0.0.1"

    def test_omitted_flags_keep_defaults(self, monkeypatch):
        for name in ("FLUXDB_BIND", "FLUXDB_PORT", "FLUXDB_PROTOCOL", "FLUXDB_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        config = build_config(build_parser().parse_args([]))

        assert config.port == 6379
        assert config.protocol == "resp"
        assert config.log_level == "INFO"

    def test_log_level_is_case_insensitive(self):
        args = build_parser().parse_args(["--log-level", "debug", "--protocol", "inline"])

        assert args.log_level == "DEBUG"
        assert args.protocol == "inline"

    def test_unknown_protocol_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--protocol", "http"])
