"""Tests for the CLI commands."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from calkit.cli import cli
from calkit.config import load_config

pytestmark = pytest.mark.unit

EVENTS = [
    {
        "id": "offsite",
        "provider_id": "google",
        "account_id": "acct",
        "calendar_id": "primary",
        "title": "Offsite",
        "start": "2024-05-01",
        "end": "2024-05-03",
    },
    {
        "id": "standup",
        "provider_id": "microsoft",
        "account_id": "acct",
        "calendar_id": "work",
        "title": "Standup",
        "start": "2024-05-01T09:00:00-04:00[America/New_York]",
        "end": "2024-05-01T09:30:00-04:00[America/New_York]",
    },
]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def events_file(tmp_path):
    path = tmp_path / "events.json"
    path.write_text(json.dumps(EVENTS))
    return path


class TestVersion:
    def test_version_flag(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestConfigOption:
    def test_invalid_config_reported(self, runner, tmp_path):
        (tmp_path / "calkit.toml").write_text("[calendar\n")
        result = runner.invoke(cli, ["--config", str(tmp_path), "snap", "10", "100"])
        assert result.exit_code == 1
        assert "Invalid TOML" in result.output

    def test_config_week_start_used(self, runner, tmp_path, events_file):
        (tmp_path / "calkit.toml").write_text("[calendar]\nweek_starts_on = 1\n")
        result = runner.invoke(
            cli,
            [
                "--config",
                str(tmp_path),
                "layout",
                str(events_file),
                "--day",
                "2024-05-01",
                "--time-zone",
                "America/New_York",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "2024-04-29 .. 2024-05-05" in result.output


class TestRrule:
    def test_weekly_rule(self, runner):
        result = runner.invoke(
            cli, ["rrule", "--freq", "weekly", "--interval", "2", "--by-day", "MO", "--by-day", "WE"]
        )
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "RRULE:FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE"

    def test_provider_format(self, runner):
        result = runner.invoke(
            cli,
            ["rrule", "--freq", "weekly", "--provider", "microsoft", "--start", "2024-05-06"],
        )
        assert result.exit_code == 0, result.output
        rule, payload = result.output.split("\n", 1)
        assert rule == "RRULE:FREQ=WEEKLY;INTERVAL=1"
        assert json.loads(payload)["pattern"]["daysOfWeek"] == ["monday"]

    def test_provider_requires_start(self, runner):
        result = runner.invoke(cli, ["rrule", "--provider", "google"])
        assert result.exit_code == 2
        assert "--start" in result.output

    def test_unknown_provider(self, runner):
        result = runner.invoke(cli, ["rrule", "--provider", "yahoo", "--start", "2024-05-01"])
        assert result.exit_code == 1
        assert "Unknown calendar provider: yahoo" in result.output

    def test_invalid_weekday(self, runner):
        result = runner.invoke(cli, ["rrule", "--freq", "weekly", "--by-day", "XX"])
        assert result.exit_code == 1


class TestLayout:
    def test_week_view(self, runner, events_file):
        result = runner.invoke(
            cli,
            [
                "layout",
                str(events_file),
                "--day",
                "2024-05-01",
                "--time-zone",
                "America/New_York",
            ],
        )
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "2024-04-28 .. 2024-05-04"
        assert "cols 3+2" in lines[1]
        assert lines[1].endswith("Offsite")
        assert "2024-05-01 09:00-09:30 lane 0/1 Standup" in result.output

    def test_month_view_overflow(self, runner, tmp_path):
        events = [
            {
                "id": f"e{index}",
                "provider_id": "google",
                "account_id": "acct",
                "calendar_id": "primary",
                "title": f"Event {index}",
                "start": "2024-05-01",
                "end": "2024-05-02",
            }
            for index in range(5)
        ]
        path = tmp_path / "events.json"
        path.write_text(json.dumps(events))
        result = runner.invoke(
            cli, ["layout", str(path), "--view", "month", "--day", "2024-05-15"]
        )
        assert result.exit_code == 0, result.output
        assert "+2 more on 2024-05-01" in result.output
        assert result.output.count(" .. ") == 5

    def test_invalid_events_file(self, runner, tmp_path):
        path = tmp_path / "events.json"
        path.write_text('[{"id": "x"}]')
        result = runner.invoke(cli, ["layout", str(path), "--day", "2024-05-01"])
        assert result.exit_code == 1


class TestSnap:
    def test_snaps_offset(self, runner):
        result = runner.invoke(cli, ["snap", "300", "1200"])
        assert result.exit_code == 0
        assert result.output.strip() == "06:00"

    def test_with_day_prints_boundary(self, runner):
        result = runner.invoke(
            cli, ["snap", "370", "1440", "--day", "2024-05-01", "--time-zone", "America/New_York"]
        )
        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == [
            "06:15",
            "2024-05-01T06:15:00-04:00[America/New_York]",
        ]

    def test_zero_height_rejected(self, runner):
        result = runner.invoke(cli, ["snap", "10", "0"])
        assert result.exit_code == 1


class TestInit:
    def test_writes_loadable_config(self, runner, tmp_path):
        result = runner.invoke(
            cli, ["init", str(tmp_path), "--time-zone", "Europe/Berlin", "--week-starts-on", "1"]
        )
        assert result.exit_code == 0, result.output
        config = load_config(tmp_path)
        assert config.default_time_zone == "Europe/Berlin"
        assert config.week_starts_on == 1

    def test_refuses_to_overwrite(self, runner, tmp_path):
        (tmp_path / "calkit.toml").write_text("[calendar]\n")
        result = runner.invoke(cli, ["init", str(tmp_path)])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_rejects_unknown_zone(self, runner, tmp_path):
        result = runner.invoke(cli, ["init", str(tmp_path), "--time-zone", "Mars/Base"])
        assert result.exit_code == 1
        assert not (tmp_path / "calkit.toml").exists()


class TestServe:
    def test_runs_uvicorn_with_config(self, runner, monkeypatch):
        calls = {}

        def fake_run(app, **kwargs):
            calls["app"] = app
            calls.update(kwargs)

        monkeypatch.setattr("calkit.cli.uvicorn.run", fake_run)
        result = runner.invoke(cli, ["serve", "--port", "9100"])
        assert result.exit_code == 0, result.output
        assert calls["host"] == "127.0.0.1"
        assert calls["port"] == 9100
        assert calls["log_config"] is None
