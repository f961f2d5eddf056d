"""Tests for the API server entry point."""

from unittest.mock import patch

import run_api


class TestRunApi:

    def test_serves_configured_app(self, monkeypatch):
        monkeypatch.setenv("APP_MODULE", "api.app:app")
        monkeypatch.setenv("PORT", "9001")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        with patch.object(run_api.uvicorn, "run") as run:
            run_api.main([])

        run.assert_called_once_with(
            "api.app:app", host="0.0.0.0", port=9001, reload=False, log_level="debug"
        )

    def test_flags_override_settings(self, monkeypatch):
        monkeypatch.setenv("PORT", "9001")

        with patch.object(run_api.uvicorn, "run") as run:
            run_api.main(["--port", "8080", "--host", "127.0.0.1", "--reload"])

        assert run.call_args.args == ("api:app",)
        assert run.call_args.kwargs["port"] == 8080
        assert run.call_args.kwargs["host"] == "127.0.0.1"
        assert run.call_args.kwargs["reload"] is True

    def test_banner_names_the_app(self, capsys):
        with patch.object(run_api.uvicorn, "run"):
            run_api.main([])
        assert "Stickerlab API" in capsys.readouterr().out
