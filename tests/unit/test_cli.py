import socket
from unittest.mock import patch

import pytest

from psd_server.__main__ import is_port_available, main


def find_available_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestCLI:
    def test_cli_startup_defaults(self):
        with (
            patch("psd_server.__main__.uvicorn.run") as mock_run,
            patch("psd_server.__main__.is_port_available", return_value=True),
            patch("psd_server.__main__.get_settings") as mock_settings,
            patch("sys.argv", ["psd-server"]),
        ):
            mock_settings.return_value.host = "127.0.0.1"
            mock_settings.return_value.port = 8080
            main()

        mock_run.assert_called_once()
        args, kwargs = mock_run.call_args

        from psd_server.app import app

        assert args[0] is app
        assert kwargs == {"host": "127.0.0.1", "port": 8080}

    def test_cli_argument_parsing(self):
        with (
            patch("psd_server.__main__.uvicorn.run") as mock_run,
            patch("psd_server.__main__.is_port_available", return_value=True),
            patch("sys.argv", ["psd-server", "--host", "0.0.0.0", "--port", "9090"]),
        ):
            main()

        _args, kwargs = mock_run.call_args
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["port"] == 9090

    def test_cli_port_conflict(self):
        with (
            patch("psd_server.__main__.is_port_available", return_value=False),
            patch("psd_server.__main__.uvicorn.run") as mock_run,
            patch("builtins.print") as mock_print,
            patch("sys.argv", ["psd-server", "--port", "8080"]),
        ):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1
        mock_run.assert_not_called()
        printed = [call[0][0] for call in mock_print.call_args_list]
        assert any("Port 8080 is already in use" in line for line in printed)
        assert any("psd-server --port 8081" in line for line in printed)

    def test_cli_invalid_port(self):
        with patch("sys.argv", ["psd-server", "--port", "invalid"]):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code != 0

    def test_port_availability(self):
        port = find_available_port()
        assert is_port_available("127.0.0.1", port) is True

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", port))
            sock.listen(1)

            assert is_port_available("127.0.0.1", port) is False
