"""Unit tests for the command-line interface."""

import pytest
import structlog

from inbox_sync import cli
from inbox_sync.config import get_settings


@pytest.fixture(autouse=True)
def _cli_environment(monkeypatch: pytest.MonkeyPatch, fake_service):
    """Route the CLI to the fake service and undo its logging setup."""
    monkeypatch.setattr(cli, "MailboxClient", lambda settings: fake_service)
    get_settings.cache_clear()
    yield
    structlog.reset_defaults()
    get_settings.cache_clear()


class TestParser:
    """Test suite for the argument parser."""

    def test_command_required(self) -> None:
        """Test that a subcommand must be given."""
        with pytest.raises(SystemExit):
            cli._build_parser().parse_args([])

    def test_list_defaults(self) -> None:
        """Test defaults of the list command."""
        parsed = cli._build_parser().parse_args(["list", "a@example.com"])

        assert parsed.page == 1
        assert parsed.size is None


class TestCommands:
    """Test suite for CLI commands against the fake service."""

    def test_list(self, fake_service, capsys: pytest.CaptureFixture[str]) -> None:
        """Test printing one page."""
        code = cli.main(["list", "a@example.com", "--page", "2"])

        out = capsys.readouterr().out
        assert code == 0
        assert fake_service.list_calls == [("a@example.com", 2, 10)]
        assert "a10" in out
        assert "-- page 2/2, 15 messages --" in out

    def test_list_unknown_mailbox(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a service error exits with 1."""
        code = cli.main(["list", "nobody@example.com"])

        assert code == 1
        assert "Mailbox not found" in capsys.readouterr().err

    def test_read(self, fake_service, capsys: pytest.CaptureFixture[str]) -> None:
        """Test bulk mark-read from the command line."""
        code = cli.main(["read", "b@example.com", "b0", "b2"])

        assert code == 0
        assert fake_service.bulk_calls == [["b0", "b2"]]
        assert "Marked 2 messages as read" in capsys.readouterr().out

    def test_send(self, fake_service, capsys: pytest.CaptureFixture[str]) -> None:
        """Test sending a message."""
        code = cli.main(
            ["send", "b@example.com", "--to", "you@example.com", "--subject", "Hi", "--html", "<p>x</p>"]
        )

        assert code == 0
        assert fake_service.sent[0].envelope() == {
            "from": "b@example.com",
            "to": "you@example.com",
            "subject": "Hi",
            "html": "<p>x</p>",
        }
        assert "Email sent successfully" in capsys.readouterr().out

    def test_send_rejects_blank_subject(self, fake_service) -> None:
        """Test that validation errors exit with 1 and send nothing."""
        code = cli.main(
            ["send", "b@example.com", "--to", "you@example.com", "--subject", " ", "--html", "<p>x</p>"]
        )

        assert code == 1
        assert fake_service.sent == []

    def test_watch_for_a_moment(self, fake_service, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that watch prints the inbox and stops after the duration."""
        code = cli.main(["watch", "b@example.com", "--duration", "0.05"])

        assert code == 0
        assert "b0" in capsys.readouterr().out
