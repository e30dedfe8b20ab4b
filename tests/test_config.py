"""
Unit tests for runtime configuration.
"""

import pytest

from termhook.config import DEFAULT_PORT, TermhookConfig
from termhook.errors import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "TERMHOOK_HOST",
        "TERMHOOK_PORT",
        "TERMHOOK_MAX_BUFFER_LINES",
        "TERMHOOK_PROXY_TIMEOUT",
        "TERMHOOK_MAX_FRAME_BYTES",
        "LOG_LEVEL",
        "LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_defaults(self):
        config = TermhookConfig.from_env()
        assert config.host == "127.0.0.1"
        assert config.port == DEFAULT_PORT == 9876
        assert config.max_buffer_lines == 10000
        assert config.proxy_timeout == 5.0
        assert config.log_level == "INFO"
        assert config.log_file is None


class TestFromEnv:
    def test_values_read(self, monkeypatch):
        monkeypatch.setenv("TERMHOOK_PORT", "7000")
        monkeypatch.setenv("TERMHOOK_MAX_BUFFER_LINES", "50")
        monkeypatch.setenv("TERMHOOK_PROXY_TIMEOUT", "0.5")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        config = TermhookConfig.from_env()
        assert config.port == 7000
        assert config.max_buffer_lines == 50
        assert config.proxy_timeout == 0.5
        assert config.log_level == "DEBUG"

    def test_empty_values_ignored(self, monkeypatch):
        monkeypatch.setenv("TERMHOOK_PORT", "")
        assert TermhookConfig.from_env().port == DEFAULT_PORT

    def test_invalid_value_names_variable(self, monkeypatch):
        monkeypatch.setenv("TERMHOOK_MAX_BUFFER_LINES", "0")
        with pytest.raises(ConfigError, match="TERMHOOK_MAX_BUFFER_LINES"):
            TermhookConfig.from_env()

    def test_env_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("TERMHOOK_PORT=6123\n")
        # Recorded so teardown removes what load_dotenv sets.
        monkeypatch.setenv("TERMHOOK_PORT", "")
        monkeypatch.delenv("TERMHOOK_PORT")

        assert TermhookConfig.from_env(env_file).port == 6123


class TestLoopbackOnly:
    @pytest.mark.parametrize("host", ["127.0.0.1", "localhost", "::1", "127.0.0.2"])
    def test_loopback_accepted(self, host):
        assert TermhookConfig(host=host).host == host

    @pytest.mark.parametrize("host", ["0.0.0.0", "192.168.1.10", "example.com"])
    def test_non_loopback_rejected(self, host, monkeypatch):
        monkeypatch.setenv("TERMHOOK_HOST", host)
        with pytest.raises(ConfigError, match="TERMHOOK_HOST"):
            TermhookConfig.from_env()


class TestOverrides:
    def test_none_overrides_ignored(self):
        config = TermhookConfig(port=1234).with_overrides(port=None, proxy_timeout=2.0)
        assert config.port == 1234
        assert config.proxy_timeout == 2.0

    def test_invalid_override(self):
        with pytest.raises(ConfigError):
            TermhookConfig().with_overrides(port=70000)
