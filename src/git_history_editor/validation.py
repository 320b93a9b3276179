"""Validation of user-supplied options before any git object is touched."""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

from .errors import ValidationError
from .objects import Identity
from .timestamps import DATE_FORMAT, parse_datetime

EMAIL_RE = re.compile(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$", re.IGNORECASE)

REMOTE_PREFIXES = ("http://", "https://", "git@", "ssh://", "git://", "file://")


def is_remote(location: str) -> bool:
    return location.startswith(REMOTE_PREFIXES)


def validate_email(email: str) -> str:
    email = email.strip()
    if not EMAIL_RE.match(email):
        raise ValidationError(f"Invalid email format: {email}")
    return email


def validate_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationError("Name cannot be empty")
    if "<" in name or ">" in name or "\n" in name:
        raise ValidationError(f"Name contains characters git cannot store: {name!r}")
    return name


def validate_identity(name: str, email: str) -> Identity:
    return Identity(validate_name(name), validate_email(email))


def validate_date(value: str, label: str = "date", date_format: str = DATE_FORMAT) -> datetime:
    try:
        return parse_datetime(value, date_format)
    except ValueError:
        raise ValidationError(
            f"Invalid {label} format: {value} (expected {date_format.replace('%', '')})"
        ) from None


def validate_window(start: datetime, end: datetime) -> None:
    if start > end:
        raise ValidationError("End date must not be before start date")


def validate_repo_location(location: str) -> None:
    """Check that a local path holds a git repository; remote URLs pass."""
    if not location:
        raise ValidationError("Repository path cannot be empty")
    if is_remote(location):
        return
    path = Path(location)
    if not path.exists():
        raise ValidationError(f"Invalid repository path or URL: {location}")
    if not path.is_dir():
        raise ValidationError(f"Repository path is not a directory: {location}")
    if not (path / ".git").exists() and not (path / "HEAD").exists():
        raise ValidationError(f"Repository path does not contain a valid Git repository: {location}")


def validate_flags(simulate: bool, show_diff: bool) -> None:
    if show_diff and not simulate:
        raise ValidationError("--show-diff requires --simulate")
