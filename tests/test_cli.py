"""Tests for the synse-client command line entry point."""

import json
from unittest.mock import MagicMock

import pytest

from synse_client.__main__ import (
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_SERVER_ERROR,
    EXIT_SUCCESS,
    build_parser,
    main,
)
from synse_client.api import (
    ConnectionError,
    ServerError,
    UnsupportedOperationError,
)
from synse_client.models import ErrorResponse, Status


@pytest.fixture(autouse=True)
def cli_environment(monkeypatch):
    """Undo the variables main() writes and keep logging configuration local."""
    for name in ("SYNSE_ADDRESS", "SYNSE_CONFIG_PATH"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setattr("synse_client.logging.configure_logging", MagicMock())


@pytest.fixture
def mock_client(monkeypatch):
    """Patch create_client with a MagicMock usable as a context manager."""
    client = MagicMock()
    client.__enter__.return_value = client
    factory = MagicMock(return_value=client)
    monkeypatch.setattr("synse_client.api.create_client", factory)
    client.factory = factory
    return client


class TestParser:
    def test_transport_defaults_to_http(self):
        args = build_parser().parse_args(["status"])

        assert args.transport == "http"

    def test_comma_separated_tags(self):
        args = build_parser().parse_args(["scan", "--tags", "a,b/c", "--force"])

        assert args.tags == ["a", "b/c"]
        assert args.force is True

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestMain:
    def test_build_info_needs_no_server(self, capsys):
        assert main(["build-info"]) == EXIT_SUCCESS

        info = json.loads(capsys.readouterr().out)
        assert "version" in info

    def test_missing_address_is_config_error(self, capsys):
        assert main(["status"]) == EXIT_CONFIG_ERROR

        assert "address" in capsys.readouterr().err

    def test_status_prints_json(self, mock_client, capsys):
        mock_client.status.return_value = Status(status="ok", timestamp="t")

        assert main(["--address", "localhost:5000", "status"]) == EXIT_SUCCESS

        assert json.loads(capsys.readouterr().out)["status"] == "ok"
        options, transport = mock_client.factory.call_args.args
        assert options.address == "localhost:5000"
        assert transport == "http"

    def test_config_file(self, mock_client, tmp_path):
        config = tmp_path / "synse.yaml"
        config.write_text("address: yaml-host:5000\n")
        mock_client.transactions.return_value = []

        assert main(["--config", str(config), "transactions"]) == EXIT_SUCCESS

        assert mock_client.factory.call_args.args[0].address == "yaml-host:5000"

    def test_info_passes_device(self, mock_client):
        mock_client.info.return_value = {"id": "dev-1"}

        assert main(["--address", "x:5000", "info", "dev-1"]) == EXIT_SUCCESS

        mock_client.info.assert_called_once_with("dev-1")

    def test_server_error_exit_code(self, mock_client):
        mock_client.status.side_effect = ServerError(ErrorResponse(http_code=500))

        assert main(["--address", "x:5000", "status"]) == EXIT_SERVER_ERROR

    def test_connection_error_exit_code(self, mock_client, capsys):
        mock_client.status.side_effect = ConnectionError()

        assert main(["--address", "x:5000", "status"]) == EXIT_CONNECTION_ERROR
        assert "Cannot connect" in capsys.readouterr().err

    def test_stream_over_http_is_rejected(self, mock_client):
        mock_client.read_stream.side_effect = UnsupportedOperationError("not over http")

        assert main(["--address", "x:5000", "stream", "--seconds", "0.1"]) == EXIT_CONFIG_ERROR

    def test_stream_prints_readings(self, mock_client, capsys):
        mock_client.read_stream.return_value = iter([{"device": "dev-1", "value": 1}])

        code = main(
            ["--address", "x:5000", "--transport", "websocket", "stream", "--seconds", "5", "--ids", "dev-1"]
        )

        assert code == EXIT_SUCCESS
        assert json.loads(capsys.readouterr().out.strip()) == {"device": "dev-1", "value": 1}
        options = mock_client.read_stream.call_args.args[0]
        assert options.ids == ["dev-1"]
