"""
Unit tests for configuration: bind addresses, environment, CLI, validation.
"""

from pathlib import Path

import pytest

from guestbook.__main__ import build_parser, config_from_args, main
from guestbook.config import DEFAULT_HOST, DEFAULT_PORT, ServerConfig, parse_bind_address


ENV_VARS = [
    "GUESTBOOK_HOST", "GUESTBOOK_PORT", "GUESTBOOK_WORKERS", "GUESTBOOK_DB",
    "GUESTBOOK_ROOT", "GUESTBOOK_VISITOR_COUNT", "GUESTBOOK_CORS_ORIGIN",
    "GUESTBOOK_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestParseBindAddress:

    @pytest.mark.parametrize("address, expected", [
        ("0.0.0.0:8000", ("0.0.0.0", 8000)),
        ("localhost:80", ("localhost", 80)),
        (":9000", (DEFAULT_HOST, 9000)),
        ("localhost", ("localhost", DEFAULT_PORT)),
        ("", (DEFAULT_HOST, DEFAULT_PORT)),
        ("127.0.0.1:0", ("127.0.0.1", 0)),
    ])
    def test_valid(self, address, expected):
        assert parse_bind_address(address) == expected

    @pytest.mark.parametrize("address", ["host:http", "host:", "host:-1", "host:65536"])
    def test_invalid_port(self, address):
        with pytest.raises(ValueError):
            parse_bind_address(address)

    def test_custom_defaults(self):
        assert parse_bind_address(":1", default_host="::1") == ("::1", 1)
        assert parse_bind_address("example", default_port=5) == ("example", 5)


class TestValidate:

    def test_defaults_are_valid(self):
        ServerConfig().validate()

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 65536},
        {"workers": 0},
        {"queue_size": 0},
        {"buffer_size": 512},
        {"timeout": 0},
        {"shutdown_polls": 0},
        {"shutdown_poll_interval": 0},
        {"log_level": "VERBOSE"},
        {"log_format": "xml"},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_missing_static_root(self, tmp_path: Path):
        with pytest.raises(ValueError, match="Static root"):
            ServerConfig(static_root=str(tmp_path / "missing")).validate()

    def test_log_level_is_case_insensitive(self):
        ServerConfig(log_level="debug").validate()


class TestFromEnv:

    def test_defaults_without_env(self):
        assert ServerConfig.from_env() == ServerConfig()

    def test_reads_variables(self, monkeypatch):
        monkeypatch.setenv("GUESTBOOK_HOST", "0.0.0.0")
        monkeypatch.setenv("GUESTBOOK_PORT", "9090")
        monkeypatch.setenv("GUESTBOOK_WORKERS", "8")
        monkeypatch.setenv("GUESTBOOK_DB", "/tmp/gb.db")
        monkeypatch.setenv("GUESTBOOK_ROOT", "/srv/www")
        monkeypatch.setenv("GUESTBOOK_CORS_ORIGIN", "https://example.com")
        monkeypatch.setenv("GUESTBOOK_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert (config.host, config.port, config.workers) == ("0.0.0.0", 9090, 8)
        assert config.db_path == "/tmp/gb.db"
        assert config.static_root == "/srv/www"
        assert config.cors_origin == "https://example.com"
        assert config.log_level == "DEBUG"
        assert config.visitor_count is True

    @pytest.mark.parametrize("value, enabled", [
        ("0", False), ("false", False), ("No", False), (" off ", False),
        ("1", True), ("yes", True),
    ])
    def test_visitor_count_flag(self, monkeypatch, value, enabled):
        monkeypatch.setenv("GUESTBOOK_VISITOR_COUNT", value)
        assert ServerConfig.from_env().visitor_count is enabled

    def test_non_numeric_port(self, monkeypatch):
        monkeypatch.setenv("GUESTBOOK_PORT", "eighty")
        with pytest.raises(ValueError):
            ServerConfig.from_env()


class TestCommandLine:

    def parse(self, *argv) -> ServerConfig:
        return config_from_args(build_parser().parse_args(list(argv)))

    def test_no_arguments_uses_defaults(self):
        assert self.parse() == ServerConfig()

    def test_positional_address(self):
        config = self.parse("0.0.0.0:8000")
        assert (config.host, config.port) == ("0.0.0.0", 8000)

    def test_options(self):
        config = self.parse(
            "-w", "2", "--db", "x.db", "--root", "public",
            "--no-visitor-count", "--cors-origin", "https://a.dev", "-l", "ERROR",
        )

        assert config.workers == 2
        assert config.db_path == "x.db"
        assert config.static_root == "public"
        assert config.visitor_count is False
        assert config.cors_origin == "https://a.dev"
        assert config.log_level == "ERROR"

    def test_cli_overrides_env(self, monkeypatch):
        monkeypatch.setenv("GUESTBOOK_WORKERS", "16")
        monkeypatch.setenv("GUESTBOOK_PORT", "9999")

        config = self.parse("-w", "3", "localhost")

        assert config.workers == 3
        assert (config.host, config.port) == ("localhost", 9999)

    def test_invalid_log_level_choice(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-level", "LOUD"])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            build_parser().parse_args(["--version"])
        assert exc.value.code == 0
        assert "guestbook 1.0.0" in capsys.readouterr().out

    def test_main_rejects_bad_address(self, capsys):
        assert main(["localhost:notaport"]) == 1
        assert "Invalid port" in capsys.readouterr().err

    def test_main_rejects_zero_workers(self, capsys, tmp_path: Path):
        assert main(["--workers", "0", "--root", str(tmp_path)]) == 1
        assert "workers" in capsys.readouterr().err
