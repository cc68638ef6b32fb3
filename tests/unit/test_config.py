"""
Unit tests for configuration and the command line.
"""

import os

import pytest

from tinyhttpd import __version__
from tinyhttpd.__main__ import build_parser, config_from_args, main
from tinyhttpd.config import ServerConfig, DEFAULT_STORAGE_DIR


ENV_VARS = (
    "HTTP_HOST", "HTTP_PORT", "HTTP_WORKERS",
    "HTTP_STORAGE_DIR", "HTTP_LOG_LEVEL", "HTTP_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 4221
        assert config.max_workers == (os.cpu_count() or 1)
        assert config.storage_dir == DEFAULT_STORAGE_DIR
        assert config.compress_echo is False
        assert config.preserve_line_endings is False
        config.validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HTTP_HOST", "127.0.0.1")
        monkeypatch.setenv("HTTP_PORT", "9000")
        monkeypatch.setenv("HTTP_WORKERS", "3")
        monkeypatch.setenv("HTTP_STORAGE_DIR", "/srv/files")
        monkeypatch.setenv("HTTP_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("HTTP_LOG_FORMAT", "json")

        config = ServerConfig.from_env()

        assert config.host == "127.0.0.1"
        assert config.port == 9000
        assert config.max_workers == 3
        assert config.storage_dir == "/srv/files"
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_from_env_defaults(self):
        assert ServerConfig.from_env() == ServerConfig()

    def test_from_env_bad_number(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "not-a-port")

        with pytest.raises(ValueError):
            ServerConfig.from_env()

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 65536},
        {"max_workers": 0},
        {"buffer_size": 0},
        {"backlog": -1},
        {"log_level": "LOUD"},
        {"log_format": "xml"},
        {"shutdown_timeout": 0},
    ])
    def test_validate_rejects(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_port_zero_is_valid(self):
        ServerConfig(port=0).validate()


class TestCommandLine:
    """Tests for the argparse front end."""

    def test_flags_override_env(self, monkeypatch):
        monkeypatch.setenv("HTTP_PORT", "9000")
        monkeypatch.setenv("HTTP_STORAGE_DIR", "/from/env")

        args = build_parser().parse_args([
            "--directory", "/from/cli",
            "-w", "2",
            "--gzip",
            "--preserve-line-endings",
            "-l", "debug",
            "--log-format", "json",
        ])
        config = config_from_args(args)

        assert config.port == 9000
        assert config.storage_dir == "/from/cli"
        assert config.max_workers == 2
        assert config.compress_echo is True
        assert config.preserve_line_endings is True
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_unset_flags_keep_defaults(self):
        config = config_from_args(build_parser().parse_args([]))

        assert config == ServerConfig()

    def test_invalid_config_exits_2(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--workers", "0"])

        assert exc_info.value.code == 2
        assert "max_workers" in capsys.readouterr().err

    def test_invalid_env_exits_2(self, monkeypatch):
        monkeypatch.setenv("HTTP_WORKERS", "many")

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 2

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out
