"""Tests for the command-line entry point."""

from unittest.mock import patch

from reva import __main__ as cli


class TestMain:
    def test_exits_without_api_key(self, monkeypatch, caplog):
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        with patch.object(cli, "load_dotenv"), patch.object(cli, "Reva") as mock_reva:
            assert cli.main([]) == 1
        mock_reva.assert_not_called()
        assert "OPENROUTER_API_KEY is not set" in caplog.text

    def test_runs_server(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "or-key")
        monkeypatch.setenv("PORT", "4000")
        with patch.object(cli, "load_dotenv"), patch.object(cli, "Reva") as mock_reva:
            assert cli.main(["--host", "127.0.0.1"]) == 0
        settings = mock_reva.call_args.kwargs["settings"]
        assert settings.api_key == "or-key"
        mock_reva.return_value.run.assert_called_once_with(
            host="127.0.0.1", port=4000, debug=False
        )

    def test_port_flag_wins(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "or-key")
        with patch.object(cli, "load_dotenv"), patch.object(cli, "Reva") as mock_reva:
            cli.main(["--port", "5050", "--debug"])
        kwargs = mock_reva.return_value.run.call_args.kwargs
        assert kwargs["port"] == 5050
        assert kwargs["debug"] is True
