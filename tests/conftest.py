"""Shared fixtures: synthetic commits and throwaway git repositories."""

import os
import shutil
import subprocess
from datetime import datetime, timezone
from pathlib import Path

import pytest

from git_history_editor.git import GitRepo
from git_history_editor.graph import CommitGraph, CommitNode, TrackedRef
from git_history_editor.objects import commit_hash

EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def make_body(
    parents=(),
    message="commit\n",
    name="Test User",
    email="test@example.com",
    timestamp=1_600_000_000,
    tree=EMPTY_TREE,
    extra_headers=(),
):
    lines = [f"tree {tree}"]
    lines += [f"parent {p}" for p in parents]
    lines.append(f"author {name} <{email}> {timestamp} +0000")
    lines.append(f"committer {name} <{email}> {timestamp} +0000")
    lines += list(extra_headers)
    return ("\n".join(lines) + "\n\n" + message).encode("utf-8")


def make_node(parents=(), message="commit\n", timestamp=1_600_000_000, **kwargs):
    body = make_body(parents, message, timestamp=timestamp, **kwargs)
    return CommitNode.from_raw(commit_hash(body), body)


@pytest.fixture
def linear_graph():
    """A <- B <- C <- D, with refs/heads/main at D."""
    a = make_node(message="first\n", timestamp=1_600_000_000)
    b = make_node([a.hash], "second\n", timestamp=1_600_000_100)
    c = make_node([b.hash], "third\n", timestamp=1_600_000_200)
    d = make_node([c.hash], "fourth\n", timestamp=1_600_000_300)
    ref = TrackedRef("refs/heads/main", d.hash, d.hash)
    return CommitGraph.from_nodes([d, c, b, a], [ref])


@pytest.fixture
def merge_graph():
    """A <- B, A <- C, M merges B and C, with refs/heads/main at M."""
    a = make_node(message="root\n", timestamp=1_600_000_000)
    b = make_node([a.hash], "left\n", timestamp=1_600_000_100)
    c = make_node([a.hash], "right\n", timestamp=1_600_000_200)
    m = make_node([b.hash, c.hash], "merge\n", timestamp=1_600_000_300)
    ref = TrackedRef("refs/heads/main", m.hash, m.hash)
    return CommitGraph.from_nodes([a, b, c, m], [ref])


class RepoBuilder:
    """Builds commits in a real repository with fixed identities and dates."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.counter = 0
        self.git("init", "-q")
        self.git("symbolic-ref", "HEAD", "refs/heads/main")
        self.git("config", "user.name", "Test User")
        self.git("config", "user.email", "test@example.com")
        self.git("config", "commit.gpgsign", "false")
        self.git("config", "tag.gpgsign", "false")

    def git(self, *args, when=None, name="Test User", email="test@example.com"):
        env = dict(os.environ)
        env.update(
            GIT_AUTHOR_NAME=name,
            GIT_AUTHOR_EMAIL=email,
            GIT_COMMITTER_NAME=name,
            GIT_COMMITTER_EMAIL=email,
            GIT_CONFIG_NOSYSTEM="1",
        )
        if when is not None:
            stamp = f"{int(when.timestamp())} +0000"
            env.update(GIT_AUTHOR_DATE=stamp, GIT_COMMITTER_DATE=stamp)
        result = subprocess.run(
            ["git", *args], cwd=self.path, env=env, capture_output=True, text=True, check=True
        )
        return result.stdout.strip()

    def commit(self, message, when=None, **identity):
        self.counter += 1
        if when is None:
            when = datetime(2022, 1, self.counter, 12, 0, 0, tzinfo=timezone.utc)
        (self.path / "file.txt").write_text(f"change {self.counter}\n")
        self.git("add", "file.txt")
        self.git("commit", "-q", "-m", message, when=when, **identity)
        return self.head()

    def head(self, ref="HEAD"):
        return self.git("rev-parse", ref)

    def message(self, rev="HEAD"):
        return self.git("log", "-1", "--format=%B", rev)

    def object_exists(self, oid):
        result = subprocess.run(
            ["git", "cat-file", "-e", oid], cwd=self.path, capture_output=True
        )
        return result.returncode == 0

    @property
    def repo(self):
        return GitRepo(self.path)


@pytest.fixture
def repo_builder(tmp_path):
    if shutil.which("git") is None:
        pytest.skip("git not installed")
    path = tmp_path / "repo"
    path.mkdir()
    return RepoBuilder(path)


@pytest.fixture
def linear_repo(repo_builder):
    """Three commits on main, dated 2022-01-01..03."""
    for message in ("first", "second", "third"):
        repo_builder.commit(message)
    return repo_builder
