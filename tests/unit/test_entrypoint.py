"""Tests for the top-level main.py dispatcher."""
import pytest

import main


class TestDispatch:
    """Tests for main.main()."""

    def test_no_arguments_prints_usage(self, capsys):
        assert main.main([]) == 2
        assert "Usage:" in capsys.readouterr().out

    def test_unknown_subcommand(self, capsys):
        assert main.main(["referee"]) == 2

    def test_server_help_reaches_server_parser(self, capsys):
        with pytest.raises(SystemExit):
            main.main(["server", "--help"])
        assert "--extended-commands" in capsys.readouterr().out

    def test_client_requires_url(self):
        with pytest.raises(SystemExit):
            main.main(["client"])
