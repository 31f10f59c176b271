"""
Tests for the management commands.
"""
import json

import pytest

from code_explorer.cli import commands


class TestAuditCommand:
    """Tests for the audit command."""

    def test_prints_newest_first(self, audit_log, audit_path, clock, capsys):
        """Should print stored entries as JSON lines, newest first."""
        audit_log.log_search("s", "ip", "first", True)
        clock.advance(seconds=1)
        audit_log.log_search("s", "ip", "second", False, error="boom")
        audit_log.flush()

        commands.main(["audit", "--path", str(audit_path), "--limit", "5"])

        lines = capsys.readouterr().out.strip().splitlines()
        entries = [json.loads(line) for line in lines]
        assert [e["details"]["query"] for e in entries] == ["second", "first"]
        assert entries[0]["details"]["error"] == "boom"

    def test_corrupt_log_exits(self, audit_path):
        """Should exit non-zero when the log cannot be read."""
        audit_path.parent.mkdir(parents=True)
        audit_path.write_text("[", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            commands.main(["audit", "--path", str(audit_path)])
        assert exc_info.value.code == 1


class TestOtherCommands:
    """Tests for generate-secret and the usage fallback."""

    def test_generate_secret(self, capsys):
        """Should print a fresh random secret each time."""
        commands.main(["generate-secret"])
        commands.main(["generate-secret"])
        first, second = capsys.readouterr().out.split()
        assert first != second
        assert len(first) >= 40

    def test_no_command(self, capsys):
        """Should print help and exit non-zero without a command."""
        with pytest.raises(SystemExit) as exc_info:
            commands.main([])
        assert exc_info.value.code == 1

    def test_check_repo_requires_config(self, monkeypatch):
        """Should exit when no repository is configured."""
        monkeypatch.setattr(commands.settings, "github_owner", "")
        with pytest.raises(SystemExit):
            commands.main(["check-repo"])
