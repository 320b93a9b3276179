"""Default author identity from git configuration."""

from __future__ import annotations

import configparser
import logging
import os
from pathlib import Path

from .git import GitError, GitRepo
from .objects import Identity

logger = logging.getLogger(__name__)


def gitconfig_paths() -> list[Path]:
    """Config files consulted when ``git config`` gives nothing, user first."""
    paths = []
    home = os.environ.get("HOME") or os.environ.get("USERPROFILE")
    if home:
        paths.append(Path(home) / ".gitconfig")
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        paths.append(Path(xdg) / "git" / "config")
    elif home:
        paths.append(Path(home) / ".config" / "git" / "config")
    paths.append(Path("/etc/gitconfig"))
    return paths


def parse_gitconfig(text: str, section: str, key: str) -> str | None:
    """Read ``section.key`` from gitconfig text.

    Only plain ``[section]`` headers are matched; subsections are ignored.
    """
    parser = configparser.RawConfigParser(strict=False, interpolation=None)
    try:
        parser.read_string(text)
    except configparser.Error as e:
        logger.debug("Cannot parse gitconfig: %s", e)
        return None
    for name in parser.sections():
        if name.strip().lower() == section.lower() and parser.has_option(name, key):
            value = parser.get(name, key).strip().strip('"')
            return value or None
    return None


def read_gitconfig_value(section: str, key: str, paths: list[Path] | None = None) -> str | None:
    for path in paths if paths is not None else gitconfig_paths():
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        value = parse_gitconfig(text, section, key)
        if value:
            return value
    return None


def _config_value(repo: GitRepo | None, key: str) -> str | None:
    repo = repo or GitRepo()
    try:
        value = repo.get_config_value(key)
    except GitError as e:
        logger.debug("git config unavailable: %s", e)
        value = None
    if value:
        return value
    section, _, name = key.partition(".")
    return read_gitconfig_value(section, name)


def default_identity(repo: GitRepo | None = None) -> Identity | None:
    """The configured ``user.name``/``user.email``, or None if either is unset."""
    name = _config_value(repo, "user.name")
    email = _config_value(repo, "user.email")
    if not name or not email:
        logger.debug("No default identity configured (name=%r, email=%r)", name, email)
        return None
    return Identity(name, email)
