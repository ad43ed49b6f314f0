"""Tests for ids, time parsing and git capture."""

from __future__ import annotations

import re
import shutil
import subprocess
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from koi.memory.record import GitContext
from koi.utils.git import get_git_context, parse_porcelain
from koi.utils.ids import new_filename, new_memory_id
from koi.utils.timeutil import date_key, format_relative_time, parse_since

NOW = 1_770_000_000_000
HOUR = 60 * 60 * 1000
DAY = 24 * HOUR


def _local_midnight_ms(day: date) -> int:
    return int(datetime(day.year, day.month, day.day).timestamp() * 1000)


class TestIds:
    def test_memory_id_format(self):
        assert re.fullmatch(r"mem_[0-9a-f]{16}", new_memory_id())

    def test_memory_ids_unique(self):
        assert len({new_memory_id() for _ in range(1000)}) == 1000

    def test_filename_format(self):
        assert re.fullmatch(r"\d{6}_[0-9a-f]{4}\.md", new_filename())

    def test_filename_uses_time(self):
        assert new_filename(datetime(2026, 2, 4, 15, 30, 12)).startswith("153012_")


class TestParseSince:
    def test_days(self):
        assert parse_since("1d", now=NOW) == NOW - DAY

    def test_weeks(self):
        assert parse_since("2w", now=NOW) == NOW - 14 * DAY

    def test_hours(self):
        assert parse_since("12h", now=NOW) == NOW - 12 * HOUR

    def test_today(self):
        assert parse_since("today") == _local_midnight_ms(date.today())

    def test_yesterday(self):
        assert parse_since("yesterday") == _local_midnight_ms(date.today() - timedelta(days=1))

    def test_iso_date_is_utc_midnight(self):
        expected = int(datetime(2026, 1, 15, tzinfo=timezone.utc).timestamp() * 1000)
        assert parse_since("2026-01-15") == expected

    def test_iso_datetime_with_z(self):
        expected = int(datetime(2026, 1, 15, 10, 30, tzinfo=timezone.utc).timestamp() * 1000)
        assert parse_since("2026-01-15T10:30:00Z") == expected

    def test_iso_datetime_with_offset(self):
        expected = int(datetime(2026, 1, 15, 8, 30, tzinfo=timezone.utc).timestamp() * 1000)
        assert parse_since("2026-01-15T10:30:00+02:00") == expected

    def test_naive_datetime_is_local(self):
        expected = int(datetime(2026, 1, 15, 10, 30).timestamp() * 1000)
        assert parse_since("2026-01-15T10:30:00") == expected

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2026-02-01T10:00:00.5Z", datetime(2026, 2, 1, 10, 0, 0, 500000, tzinfo=timezone.utc)),
            ("2026-02-01T10:00:00.123456789Z", datetime(2026, 2, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)),
            ("2026-02-01T10:00Z", datetime(2026, 2, 1, 10, 0, tzinfo=timezone.utc)),
            ("2026-02-01T12:00:00+0200", datetime(2026, 2, 1, 10, 0, tzinfo=timezone.utc)),
            ("2026-02-01 10:00:00Z", datetime(2026, 2, 1, 10, 0, tzinfo=timezone.utc)),
        ],
    )
    def test_iso_variants(self, value, expected):
        assert parse_since(value) == int(expected.timestamp() * 1000)

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2026/02/01", datetime(2026, 2, 1)),
            ("2026/02/01 10:30", datetime(2026, 2, 1, 10, 30)),
            ("Feb 1, 2026", datetime(2026, 2, 1)),
            ("1 February 2026", datetime(2026, 2, 1)),
        ],
    )
    def test_calendar_forms_are_local(self, value, expected):
        assert parse_since(value) == int(expected.timestamp() * 1000)

    @pytest.mark.parametrize(
        "value", ["invalid", "", None, "5x", "1 d", "2026-13-45", "-1d", "2026/13/01", "Smarch 1, 2026"]
    )
    def test_invalid_is_none(self, value):
        assert parse_since(value) is None


class TestDateKey:
    def test_utc_date(self):
        ms = int(datetime(2026, 2, 4, 23, 30, tzinfo=timezone.utc).timestamp() * 1000)
        assert date_key(ms) == "2026-02-04"

    def test_format(self):
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", date_key(NOW))


class TestFormatRelativeTime:
    def test_just_now(self):
        assert format_relative_time(NOW - 30 * 1000, now=NOW) == "just now"

    def test_minutes(self):
        assert format_relative_time(NOW - 5 * 60 * 1000, now=NOW) == "5 min ago"

    def test_hours(self):
        assert format_relative_time(NOW - 3 * HOUR, now=NOW) == "3 hours ago"
        assert format_relative_time(NOW - HOUR, now=NOW) == "1 hour ago"

    def test_days(self):
        assert format_relative_time(NOW - 2 * DAY, now=NOW) == "2 days ago"
        assert format_relative_time(NOW - DAY, now=NOW) == "1 day ago"


class TestParsePorcelain:
    def test_paths(self):
        status = " M src/app.py\nA  src/new.py\n?? notes.txt"
        assert parse_porcelain(status) == ["src/app.py", "src/new.py", "notes.txt"]

    def test_empty(self):
        assert parse_porcelain("") == []


class TestGitContextFallback:
    def test_git_missing(self, tmp_path: Path):
        with patch("koi.utils.git.subprocess.run", side_effect=FileNotFoundError):
            assert get_git_context(tmp_path) == GitContext.unknown()

    def test_timeout(self, tmp_path: Path):
        with patch(
            "koi.utils.git.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="git", timeout=1),
        ):
            assert get_git_context(tmp_path, timeout=1) == GitContext.unknown()

    def test_not_a_repository(self, tmp_path: Path):
        failed = MagicMock(returncode=128, stdout="", stderr="fatal: not a git repository")
        with patch("koi.utils.git.subprocess.run", return_value=failed):
            assert get_git_context(tmp_path) == GitContext.unknown()

    def test_detached_head_branch_unknown(self, tmp_path: Path):
        outputs = {
            "--show-toplevel": "/repo\n",
            "--show-current": "\n",
            "--short": "abc1234\n",
            "--porcelain": "",
        }

        def fake_run(cmd, **kwargs):
            return MagicMock(returncode=0, stdout=outputs[cmd[-1] if cmd[-1] != "HEAD" else "--short"])

        with patch("koi.utils.git.subprocess.run", side_effect=fake_run):
            ctx = get_git_context(tmp_path)
        assert ctx == GitContext(branch="unknown", commit="abc1234", dirty=False, files_changed=[])


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
class TestGitContextRealRepo:
    def _git(self, cwd: Path, *args: str) -> None:
        subprocess.run(
            ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com",
             "-c", "commit.gpgsign=false", *args],
            cwd=cwd, check=True, capture_output=True,
        )

    def test_captures_repo_state(self, tmp_path: Path):
        repo = tmp_path / "repo"
        repo.mkdir()
        self._git(repo, "init", "-q")
        self._git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
        (repo / "a.txt").write_text("one\n", encoding="utf-8")
        self._git(repo, "add", "a.txt")
        self._git(repo, "commit", "-q", "-m", "init")

        clean = get_git_context(repo)
        assert clean.branch == "main"
        assert clean.commit != "unknown"
        assert clean.dirty is False
        assert clean.files_changed == []

        (repo / "a.txt").write_text("two\n", encoding="utf-8")
        (repo / "b.txt").write_text("new\n", encoding="utf-8")
        dirty = get_git_context(repo)
        assert dirty.dirty is True
        assert dirty.files_changed == ["a.txt", "b.txt"]
