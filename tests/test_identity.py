from conftest import requires_git

from git_history_editor.identity import (
    default_identity,
    gitconfig_paths,
    parse_gitconfig,
    read_gitconfig_value,
)
from git_history_editor.objects import Identity

GITCONFIG = """\
[core]
\teditor = vim
[user]
\tname = Jane Doe
\temail = "jane@example.com"
[remote "origin"]
\turl = git@example.com:repo.git
"""


def test_parse_gitconfig():
    assert parse_gitconfig(GITCONFIG, "user", "name") == "Jane Doe"
    assert parse_gitconfig(GITCONFIG, "user", "email") == "jane@example.com"
    assert parse_gitconfig(GITCONFIG, "user", "signingkey") is None
    assert parse_gitconfig("not a config", "user", "name") is None


def test_read_first_file_with_value(tmp_path):
    empty = tmp_path / "empty"
    empty.write_text("[core]\n\tbare = false\n")
    full = tmp_path / "full"
    full.write_text(GITCONFIG)
    missing = tmp_path / "missing"
    assert read_gitconfig_value("user", "name", [missing, empty, full]) == "Jane Doe"
    assert read_gitconfig_value("user", "name", [missing]) is None


def test_gitconfig_paths_follow_home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    paths = gitconfig_paths()
    assert paths[0] == tmp_path / ".gitconfig"
    assert tmp_path / ".config" / "git" / "config" in paths


@requires_git
def test_default_identity_from_repository(linear_repo):
    assert default_identity(linear_repo.repo) == Identity("Test User", "test@example.com")
