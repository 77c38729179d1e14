"""Unit tests for railstack.cli (error reporting and exit codes).

The generation run itself is mocked; see tests/integration for full runs.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from railstack.cli import EXIT_INTERRUPTED, main
from railstack.errors import EnvironmentUnavailable, GenerationFailure, PatchFailure

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _clear_version_env(monkeypatch):
    for name in ("RUBY", "NODE", "POSTGRES", "RAILS", "REDIS"):
        monkeypatch.delenv(f"RAILSTACK_{name}_VERSION", raising=False)


class TestMain:
    def test_success(self, tmp_path):
        with patch("railstack.cli._run", new_callable=AsyncMock) as mock_run:
            assert main(["blog", "--sidekiq"], cwd=tmp_path) == 0
        config = mock_run.await_args.args[0]
        assert config.project_name == "blog"
        assert config.background_jobs is True

    def test_help_exits_zero(self, tmp_path, capsys):
        with patch("railstack.cli._run", new_callable=AsyncMock) as mock_run:
            assert main(["-h"], cwd=tmp_path) == 0
        mock_run.assert_not_awaited()
        assert "usage:" in capsys.readouterr().out

    def test_help_with_unknown_flag_exits_zero(self, tmp_path):
        assert main(["-h", "--bogus"], cwd=tmp_path) == 0

    def test_abbreviated_flag_exits_one(self, tmp_path, capsys):
        with patch("railstack.cli._run", new_callable=AsyncMock) as mock_run:
            assert main(["blog", "--sidek"], cwd=tmp_path) == 1
        mock_run.assert_not_awaited()
        assert "usage:" in capsys.readouterr().err

    def test_missing_name(self, tmp_path, capsys):
        assert main([], cwd=tmp_path) == 1
        err = capsys.readouterr().err
        assert "Project name is required" in err
        assert "usage:" in err

    def test_target_exists(self, tmp_path, capsys):
        (tmp_path / "blog").mkdir()
        with patch("railstack.cli._run", new_callable=AsyncMock) as mock_run:
            assert main(["blog"], cwd=tmp_path) == 1
        mock_run.assert_not_awaited()
        assert "already exists" in capsys.readouterr().err

    def test_environment_unavailable_prints_remediation(self, tmp_path, capsys):
        error = EnvironmentUnavailable("Native Windows is not supported.", ["Install WSL2"])
        with patch("railstack.cli._run", new_callable=AsyncMock, side_effect=error):
            assert main(["blog"], cwd=tmp_path) == 1
        err = capsys.readouterr().err
        assert "Native Windows is not supported." in err
        assert "Install WSL2" in err

    @pytest.mark.parametrize(
        "error",
        [
            GenerationFailure("rails new", 2),
            PatchFailure("database", "config/database.yml", "missing"),
            PermissionError("denied"),
        ],
    )
    def test_failures_exit_one(self, tmp_path, error):
        with patch("railstack.cli._run", new_callable=AsyncMock, side_effect=error):
            assert main(["blog"], cwd=tmp_path) == 1

    def test_interrupt(self, tmp_path):
        with patch("railstack.cli._run", new_callable=AsyncMock, side_effect=KeyboardInterrupt):
            assert main(["blog"], cwd=tmp_path) == EXIT_INTERRUPTED
