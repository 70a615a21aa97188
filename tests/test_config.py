"""
Tests for configuration resolution
"""

import logging

import pytest

from api_scaffold.core.config import ServerConfig, resolve_config, setup_logging
from api_scaffold.errors import ConfigurationError, MissingConfiguration
from api_scaffold.logsink import SERVER_TAG, SERVER_WARNING_TAG


class TestServerConfig:
    def test_address(self):
        config = ServerConfig(server_port="8080")

        assert config.host == "0.0.0.0"
        assert config.port == 8080
        assert config.address == "0.0.0.0:8080"


class TestResolveConfig:
    """Two-step resolution: optional env file, then required SERVER_PORT."""

    def test_port_from_environment(self, sink):
        config = resolve_config(environ={"SERVER_PORT": "8080"}, env_file=None, sink=sink)

        assert config.server_port == "8080"
        assert config.address == "0.0.0.0:8080"
        assert sink.lines[0] == (SERVER_TAG, 'Retrieving value of "SERVER_PORT"...')

    def test_missing_port(self, sink):
        with pytest.raises(MissingConfiguration) as exc_info:
            resolve_config(environ={}, env_file=None, sink=sink)

        assert exc_info.value.variable == "SERVER_PORT"
        assert "SERVER_PORT" in str(exc_info.value)

    def test_empty_port_is_missing(self, sink):
        with pytest.raises(MissingConfiguration):
            resolve_config(environ={"SERVER_PORT": "  "}, env_file=None, sink=sink)

    @pytest.mark.parametrize("value", ["abc", "80.5", "-1", "70000"])
    def test_invalid_port(self, sink, value):
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_config(environ={"SERVER_PORT": value}, env_file=None, sink=sink)

        assert not isinstance(exc_info.value, MissingConfiguration)

    def test_port_from_env_file(self, sink, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("SERVER_PORT=9090\nOTHER=value\n")
        environ = {}

        config = resolve_config(environ=environ, env_file=env_file, sink=sink)

        assert config.server_port == "9090"
        assert environ["OTHER"] == "value"
        assert SERVER_WARNING_TAG not in sink.tags()

    def test_environment_wins_over_env_file(self, sink, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("SERVER_PORT=9090\n")

        config = resolve_config(environ={"SERVER_PORT": "8080"}, env_file=env_file, sink=sink)

        assert config.server_port == "8080"

    def test_missing_env_file_is_a_warning(self, sink, tmp_path):
        config = resolve_config(
            environ={"SERVER_PORT": "8080"},
            env_file=tmp_path / "absent.env",
            sink=sink,
        )

        assert config.server_port == "8080"
        assert SERVER_WARNING_TAG in sink.tags()

    def test_missing_env_file_and_port(self, sink, tmp_path):
        with pytest.raises(MissingConfiguration):
            resolve_config(environ={}, env_file=tmp_path / "absent.env", sink=sink)

        assert SERVER_WARNING_TAG in sink.tags()

    def test_env_file_without_port(self, sink, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("LOG_LEVEL=debug\n")

        with pytest.raises(MissingConfiguration):
            resolve_config(environ={}, env_file=env_file, sink=sink)

    def test_defaults_to_os_environ(self, sink, monkeypatch, tmp_path):
        monkeypatch.setenv("SERVER_PORT", "7070")

        config = resolve_config(env_file=tmp_path / "absent.env", sink=sink)

        assert config.server_port == "7070"


class TestSetupLogging:
    def test_quiets_uvicorn_access_log(self):
        logger = setup_logging("debug")

        assert logger.name == "api_scaffold"
        assert logging.getLogger("uvicorn.access").level == logging.WARNING
