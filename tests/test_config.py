"""Tests for bwclient.config — environment-driven configuration."""

from pathlib import Path

import pytest

from bwclient.config import (
    ClientConfig,
    CliConfig,
    RestConfig,
    RetryConfig,
    get_config,
    reset_config,
)


@pytest.fixture(autouse=True)
def _isolated_env(clean_env):
    """Every test here starts from an environment without BW_* overrides."""


class TestDefaults:
    def test_config(self):
        cfg = ClientConfig()
        assert cfg.transport == "cli"
        assert cfg.debug is False

    def test_rest(self):
        rest = RestConfig()
        assert rest.endpoint == "http://127.0.0.1:8087"
        assert rest.timeout == 30.0

    def test_cli(self):
        cli = CliConfig()
        assert cli.executable == "bw"
        assert cli.app_data_dir is None
        assert cli.session_key == ""

    def test_retry_policy(self):
        policy = RetryConfig(max_attempts=4, base_delay=1.0, max_delay=2.0).policy
        assert policy.max_attempts == 4
        assert policy.backoff(3) == 2.0

    def test_frozen(self):
        cfg = ClientConfig()
        with pytest.raises(AttributeError):
            cfg.transport = "rest"  # type: ignore[misc]

    def test_unknown_transport(self):
        with pytest.raises(ValueError, match="Unknown transport"):
            ClientConfig(transport="carrier-pigeon")


class TestFromEnv:
    def test_defaults(self):
        cfg = get_config()
        assert cfg == ClientConfig()

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("BW_TRANSPORT", "REST")
        monkeypatch.setenv("BW_DEBUG", "true")
        monkeypatch.setenv("BW_REST_ENDPOINT", "http://10.0.0.5:8087")
        monkeypatch.setenv("BW_HTTP_TIMEOUT", "5")
        monkeypatch.setenv("BW_EXECUTABLE", "/usr/local/bin/bw")
        monkeypatch.setenv("BITWARDENCLI_APPDATA_DIR", "/var/lib/bw")
        monkeypatch.setenv("BW_SESSION", "sess")
        monkeypatch.setenv("BW_RETRY_MAX_ATTEMPTS", "6")
        monkeypatch.setenv("BW_RETRY_BASE_DELAY", "0.1")
        monkeypatch.setenv("BW_RETRY_MAX_DELAY", "1")

        cfg = get_config()
        assert cfg.transport == "rest"
        assert cfg.debug is True
        assert cfg.rest.endpoint == "http://10.0.0.5:8087"
        assert cfg.rest.timeout == 5.0
        assert cfg.cli.executable == "/usr/local/bin/bw"
        assert cfg.cli.app_data_dir == Path("/var/lib/bw")
        assert cfg.cli.session_key == "sess"
        assert cfg.retry == RetryConfig(max_attempts=6, base_delay=0.1, max_delay=1.0)

    def test_singleton(self):
        assert get_config() is get_config()

    def test_reset(self, monkeypatch):
        first = get_config()
        monkeypatch.setenv("BW_TRANSPORT", "rest")
        reset_config()
        assert get_config() is not first
        assert get_config().transport == "rest"
