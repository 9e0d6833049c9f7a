"""
Tests for the Command Line Entry Point
======================================
"""

from unittest.mock import patch

from playhub.main import main, parse_args


class TestParseArgs:

    def test_defaults(self):
        args = parse_args([])

        assert args.port == 3000
        assert args.reload is False
        assert args.init_db is False

    def test_overrides(self):
        args = parse_args(["--host", "127.0.0.1", "-p", "8080", "-l", "DEBUG", "--reload"])

        assert (args.host, args.port, args.log_level, args.reload) == ("127.0.0.1", 8080, "DEBUG", True)


class TestMain:

    def test_serves_app(self):
        with patch("playhub.main.uvicorn.run") as run:
            assert main(["--port", "9000"]) == 0

        run.assert_called_once()
        assert run.call_args.args == ("playhub.api.main:app",)
        assert run.call_args.kwargs["port"] == 9000

    def test_init_db_does_not_serve(self):
        with patch("playhub.main.initialize_database") as init, \
                patch("playhub.main.asyncio.run") as run_async, \
                patch("playhub.main.uvicorn.run") as serve:
            assert main(["--init-db"]) == 0

        init.assert_called_once()
        run_async.assert_called_once()
        serve.assert_not_called()
