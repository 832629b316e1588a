from hrbot.config import Settings


class TestSettings:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-env")
        monkeypatch.setenv("RUN_TIMEOUT_SECONDS", "45")
        monkeypatch.setenv("SOCKET_MODE_ENABLED", "true")

        config = Settings()

        assert config.slack_bot_token == "xoxb-env"
        assert config.run_timeout_seconds == 45.0
        assert config.socket_mode_enabled is True

    def test_only_relay_settings_are_declared(self):
        assert "debug" not in Settings.model_fields
        assert {"http_timeout_seconds", "thinking_message", "error_message"} <= set(Settings.model_fields)
