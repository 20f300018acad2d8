"""
Tests for the VisaGuard command line.
"""

import json
from datetime import date, timedelta

import pytest
from click.testing import CliRunner

from visaguard.app import Application
from visaguard.cli import cli
from visaguard.engine.expiration import TEST_NOTIFICATION
from visaguard.notifiers.base import Notifier


TODAY = date(2026, 3, 15)


class RecordingNotifier(Notifier):
    def __init__(self):
        self.shown = []

    def show(self, title, body):
        self.shown.append((title, body))


def _expires(days: int) -> str:
    return (TODAY + timedelta(days=days)).isoformat()


class TestCLI:
    @pytest.fixture(autouse=True)
    def _setup(self, tmp_path, monkeypatch):
        for var in ("VISAGUARD_DB_URL", "VISAGUARD_NOTIFIER", "VISAGUARD_WEBHOOK_URL", "VISAGUARD_LOG_LEVEL"):
            monkeypatch.delenv(var, raising=False)
        self.db_url = f"sqlite:///{tmp_path / 'visaguard.db'}"
        self.notifier = RecordingNotifier()
        self.runner = CliRunner()

    def _invoke(self, *args):
        obj = {
            "app_factory": lambda config: Application(
                config, notifier=self.notifier, clock=lambda: TODAY
            )
        }
        return self.runner.invoke(
            cli, ["--db", self.db_url, "--notifier", "console", *args], obj=obj
        )

    def _add(self, first="Ana", last="Silva", days=60, extra=()):
        return self._invoke(
            "add", "-f", first, "-l", last, "-c", "Portugal", "-e", _expires(days),
            "-d", "Work Visa", *extra,
        )

    def _list_json(self):
        result = self._invoke("list", "--json-output")
        assert result.exit_code == 0, result.output
        return json.loads(result.output)

    def test_version(self):
        result = self.runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "visaguard" in result.output

    def test_add_runs_forced_check(self):
        result = self._add(days=20)
        assert result.exit_code == 0, result.output
        assert "Ana Silva added successfully" in result.output
        assert "1 alert(s) sent" in result.output
        assert self.notifier.shown[0][0] == "Visa Expiration Warning"

    def test_add_without_check(self):
        result = self._add(days=20, extra=["--no-check"])
        assert result.exit_code == 0, result.output
        assert self.notifier.shown == []

    def test_add_rejects_bad_date(self):
        result = self._invoke(
            "add", "-f", "Ana", "-l", "Silva", "-c", "Portugal", "-e", "31/01/2027"
        )
        assert result.exit_code == 2
        assert "YYYY-MM-DD" in result.output
        assert self._list_json() == []

    def test_add_rejects_blank_required_field(self):
        result = self._invoke(
            "add", "-f", "  ", "-l", "Silva", "-c", "Portugal", "-e", _expires(10)
        )
        assert result.exit_code == 2
        assert "first name" in result.output
        assert self._list_json() == []

    def test_add_missing_option(self):
        result = self._invoke("add", "-f", "Ana", "-l", "Silva", "-e", _expires(10))
        assert result.exit_code == 2
        assert "--country" in result.output

    def test_list(self):
        self._add("Ana", "Silva", 45)
        self._add("Kenji", "Tanaka", -3)
        result = self._invoke("list")
        assert result.exit_code == 0, result.output
        assert "Tracked persons (2)" in result.output
        assert "45 days left" in result.output
        assert "Expired 3d ago" in result.output

    def test_list_empty(self):
        result = self._invoke("list")
        assert "No persons tracked yet." in result.output

    def test_list_json(self):
        self._add(days=5)
        rows = self._list_json()
        assert len(rows) == 1
        assert rows[0]["firstName"] == "Ana"
        assert rows[0]["daysLeft"] == 5
        assert rows[0]["status"] == "warning"
        assert rows[0]["notified7"] is True

    def test_delete(self):
        self._add("Ana", "Silva", 45)
        self._add("Kenji", "Tanaka", 45)
        rows = self._list_json()
        result = self._invoke("delete", rows[0]["id"])
        assert result.exit_code == 0
        assert "Person removed." in result.output
        assert [r["id"] for r in self._list_json()] == [rows[1]["id"]]

    def test_delete_unknown(self):
        result = self._invoke("delete", "does-not-exist")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_stats(self):
        self._add("A", "Safe", 90)
        self._add("B", "Soon", 10)
        self._add("C", "Gone", -1)
        result = self._invoke("stats")
        assert result.exit_code == 0, result.output
        assert "Total:    3" in result.output
        assert "Safe:     1" in result.output
        assert "Warning:  1" in result.output
        assert "Expired:  1" in result.output
        assert "Last check: 2026-03-15" in result.output

    def test_check_forced_by_default(self):
        self._add(days=25, extra=["--no-check"])
        result = self._invoke("check")
        assert result.exit_code == 0, result.output
        assert "1 alert(s) sent" in result.output
        assert "Expiration check complete." in result.output

    def test_check_no_force_respects_daily_guard(self):
        self._add("A", "First", 90)
        self._add("B", "Second", 25, extra=["--no-check"])
        result = self._invoke("check", "--no-force")
        assert "No new alerts." in result.output
        assert self.notifier.shown == []

    def test_test_notify(self):
        result = self._invoke("test-notify")
        assert result.exit_code == 0
        assert "Test notification sent." in result.output
        assert self.notifier.shown == [TEST_NOTIFICATION]

    def test_unknown_notifier_option(self):
        result = self.runner.invoke(cli, ["--db", self.db_url, "--notifier", "console,pigeon", "stats"])
        assert result.exit_code == 2
        assert "Unknown notifier" in result.output

    def test_missing_config_file(self, tmp_path):
        result = self.runner.invoke(cli, ["--config", str(tmp_path / "missing.json"), "stats"])
        assert result.exit_code == 1
        assert "Could not load configuration" in result.output
