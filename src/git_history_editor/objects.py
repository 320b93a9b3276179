"""Commit and tag objects: parsing, rebuilding and hashing with dulwich.

Everything here is pure. Object ids are computed in-process, so a rewrite
can be previewed without writing a single object to the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from dulwich.objects import Commit, Tag, format_timezone, parse_timezone

# Headers that carry a signature over the commit bytes.
SIGNATURE_HEADERS = (b"gpgsig", b"gpgsig-sha256")

# Person, time and timezone attributes of a dulwich Commit, by role.
_ROLE_ATTRS = {
    "author": ("author", "author_time", "author_timezone"),
    "committer": ("committer", "commit_time", "commit_timezone"),
}


def parse_commit(body: bytes) -> Commit:
    """Parse a raw commit body; unmodified, it serializes back to ``body``."""
    return Commit.from_string(body)


def commit_hash(body: bytes) -> str:
    """Compute the git object id of a raw commit body."""
    return parse_commit(body).id.decode("ascii")


@dataclass(frozen=True)
class Identity:
    """A name/email pair."""

    name: str
    email: str

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


def format_offset(offset: timedelta | None) -> str:
    """Render a UTC offset in git's ``+HHMM`` form."""
    if offset is None:
        return "+0000"
    return format_timezone(int(offset.total_seconds())).decode("ascii")


def parse_offset(offset: str) -> timezone:
    """Parse git's ``+HHMM`` offset into a timezone."""
    seconds, _ = parse_timezone(offset.encode("ascii"))
    return timezone(timedelta(seconds=seconds))


def _split_person(person: bytes) -> tuple[str, str]:
    name, sep, rest = person.partition(b"<")
    if not sep:
        return person.decode("utf-8", errors="replace").strip(), ""
    email = rest.split(b">", 1)[0]
    return (
        name.decode("utf-8", errors="replace").strip(),
        email.decode("utf-8", errors="replace"),
    )


@dataclass(frozen=True)
class Signature:
    """Author or committer of a commit."""

    name: str
    email: str
    timestamp: int
    offset: str = "+0000"

    @classmethod
    def from_commit(cls, commit: Commit, role: str) -> Signature:
        person_attr, time_attr, tz_attr = _ROLE_ATTRS[role]
        name, email = _split_person(getattr(commit, person_attr))
        return cls(
            name=name,
            email=email,
            timestamp=getattr(commit, time_attr),
            offset=format_timezone(getattr(commit, tz_attr)).decode("ascii"),
        )

    @classmethod
    def create(cls, identity: Identity, when: datetime) -> Signature:
        """Build a signature; naive datetimes are taken as UTC."""
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return cls(
            name=identity.name,
            email=identity.email,
            timestamp=int(when.timestamp()),
            offset=format_offset(when.utcoffset()),
        )

    @property
    def identity(self) -> Identity:
        return Identity(self.name, self.email)

    @property
    def when(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=parse_offset(self.offset))

    @property
    def person(self) -> bytes:
        return f"{self.name} <{self.email}>".encode("utf-8")

    def replace(
        self, identity: Identity | None = None, when: datetime | None = None
    ) -> Signature:
        """Return a copy with a new identity and/or date."""
        sig = self
        if identity is not None:
            sig = Signature(identity.name, identity.email, sig.timestamp, sig.offset)
        if when is not None:
            dated = Signature.create(sig.identity, when)
            sig = Signature(sig.name, sig.email, dated.timestamp, dated.offset)
        return sig


def decode_message(commit: Commit) -> str:
    """Decode a commit message using its ``encoding`` header."""
    message = commit.message or b""
    codec = commit.encoding.decode("ascii", errors="replace") if commit.encoding else "utf-8"
    try:
        return message.decode(codec, errors="replace")
    except LookupError:
        return message.decode("utf-8", errors="replace")


def normalize_message(message: str) -> bytes:
    """Encode a user-supplied message the way ``git commit`` stores it."""
    text = message.rstrip("\n")
    return (text + "\n").encode("utf-8") if text else b""


def _set(obj, attr: str, value) -> None:
    # Assigning marks the object for re-serialization, so only real changes count.
    if getattr(obj, attr) != value:
        setattr(obj, attr, value)


def _apply_signature(commit: Commit, role: str, sig: Signature) -> None:
    person_attr, time_attr, tz_attr = _ROLE_ATTRS[role]
    _set(commit, person_attr, sig.person)
    _set(commit, time_attr, sig.timestamp)
    _set(commit, tz_attr, parse_timezone(sig.offset.encode("ascii"))[0])


def rebuild_commit(
    body: bytes,
    parents: list[str] | tuple[str, ...],
    author: Signature | None = None,
    committer: Signature | None = None,
    message: str | None = None,
) -> bytes:
    """Rebuild a raw commit with remapped parents and optional new fields.

    Fields left as None keep their original bytes, so rebuilding a commit
    with its own parents and no new fields returns ``body`` unchanged. The
    tree is never altered.
    """
    commit = parse_commit(body)
    _set(commit, "parents", [p.encode("ascii") for p in parents])
    if author is not None:
        _apply_signature(commit, "author", author)
    if committer is not None:
        _apply_signature(commit, "committer", committer)
    if message is not None:
        _set(commit, "message", normalize_message(message))
        _set(commit, "encoding", None)

    rebuilt = commit.as_raw_string()
    if rebuilt == body:
        return body

    # The bytes changed, so any signature over them is now invalid.
    commit.gpgsig = None
    commit.extra[:] = [(k, v) for k, v in commit.extra if k not in SIGNATURE_HEADERS]
    return commit.as_raw_string()


def retarget_tag(body: bytes, new_object: str) -> bytes:
    """Point an annotated tag at a new commit, dropping its signature."""
    tag = Tag.from_string(body)
    tag.object = (Commit, new_object.encode("ascii"))
    tag.signature = None
    return tag.as_raw_string()
