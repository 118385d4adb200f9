"""
Tests for session configuration.
"""

import pytest

from src.citadel.config import SessionConfig


class TestSessionConfig:

    def test_defaults(self):
        config = SessionConfig()
        assert config.host == "localhost"
        assert config.port == 504
        assert config.timeout == 10.0
        assert config.record_session is False
        assert config.sessions_dir == "sessions"

    def test_from_empty_environment(self):
        assert SessionConfig.from_env({}) == SessionConfig()

    def test_from_environment(self):
        config = SessionConfig.from_env({
            "CITADEL_HOST": "citadel.example.org",
            "CITADEL_PORT": "5040",
            "CITADEL_TIMEOUT": "2.5",
            "CITADEL_RECORD": "yes",
            "CITADEL_SESSIONS_DIR": "/tmp/transcripts",
        })
        assert config.host == "citadel.example.org"
        assert config.port == 5040
        assert config.timeout == 2.5
        assert config.record_session is True
        assert config.sessions_dir == "/tmp/transcripts"

    @pytest.mark.parametrize("value", ["0", "no", "", "off"])
    def test_record_disabled(self, value):
        assert SessionConfig.from_env({"CITADEL_RECORD": value}).record_session is False

    def test_invalid_port(self):
        with pytest.raises(ValueError, match="CITADEL_PORT"):
            SessionConfig.from_env({"CITADEL_PORT": "five"})

    def test_invalid_timeout(self):
        with pytest.raises(ValueError, match="CITADEL_TIMEOUT"):
            SessionConfig.from_env({"CITADEL_TIMEOUT": "soon"})

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("CITADEL_HOST", "bbs.local")
        monkeypatch.delenv("CITADEL_PORT", raising=False)
        config = SessionConfig.from_env()
        assert config.host == "bbs.local"
        assert config.port == 504
