"""CLI tests."""

import pytest
from click.testing import CliRunner

from git_history_editor import __version__
from git_history_editor import config as config_module
from git_history_editor.cli import main


@pytest.fixture(autouse=True)
def default_config(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setattr(config_module, "_config", config_module.Config())


@pytest.fixture
def runner():
    return CliRunner()


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_show_diff_requires_simulate(runner, linear_repo):
    result = runner.invoke(main, ["-r", str(linear_repo.path), "--show-diff"])
    assert result.exit_code == 1
    assert "--show-diff requires --simulate" in result.output


def test_invalid_email(runner, linear_repo):
    result = runner.invoke(
        main,
        ["-r", str(linear_repo.path), "--email", "nope", "-n", "Jane"],
    )
    assert result.exit_code == 1
    assert "Invalid email format" in result.output


def test_name_without_email(runner, linear_repo):
    result = runner.invoke(main, ["-r", str(linear_repo.path), "-n", "Jane"])
    assert result.exit_code == 2


def test_conflicting_modes(runner, linear_repo):
    result = runner.invoke(main, ["-r", str(linear_repo.path), "-p", "-x"])
    assert result.exit_code == 2


def test_missing_repository(runner, tmp_path):
    result = runner.invoke(main, ["-r", str(tmp_path / "nowhere"), "-s"])
    assert result.exit_code == 1
    assert "Invalid repository path" in result.output


def test_show_history(runner, linear_repo):
    result = runner.invoke(main, ["-r", str(linear_repo.path), "-s"])
    assert result.exit_code == 0, result.output
    assert "Total Commits" in result.output


def test_simulated_full_rewrite(runner, linear_repo):
    head = linear_repo.head()
    result = runner.invoke(
        main,
        [
            "-r", str(linear_repo.path),
            "--email", "jane@example.com",
            "-n", "Jane Doe",
            "-b", "2023-01-01 00:00:00",
            "-e", "2023-01-07 23:59:59",
            "--simulate",
            "--show-diff",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "SIMULATION SUMMARY" in result.output
    assert "Full Repository Rewrite" in result.output
    assert linear_repo.head() == head


def test_full_rewrite_with_yes(runner, linear_repo):
    result = runner.invoke(
        main,
        [
            "-r", str(linear_repo.path),
            "--email", "jane@example.com",
            "-n", "Jane Doe",
            "-b", "2023-01-01 00:00:00",
            "-e", "2023-01-07 23:59:59",
            "--skip-backup",
            "-y",
        ],
    )
    assert result.exit_code == 0, result.output
    assert linear_repo.git("log", "--format=%an <%ae>").splitlines() == ["Jane Doe <jane@example.com>"] * 3


def test_unknown_commit_fails_cleanly(runner, linear_repo):
    head = linear_repo.head()
    result = runner.invoke(
        main,
        ["-r", str(linear_repo.path), "-p", "-c", "deadbeef", "-m", "x", "-y"],
    )
    assert result.exit_code == 1
    assert "not in the loaded history" in result.output
    assert linear_repo.head() == head
