"""Read-only records describing a rewrite, for display by a report sink."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .graph import CommitGraph, CommitNode
from .objects import Signature


@dataclass(frozen=True)
class CommitMetadata:
    """The rewritable fields of a commit."""

    author: Signature
    committer: Signature
    message: str

    @classmethod
    def of(cls, node: CommitNode) -> CommitMetadata:
        return cls(author=node.author, committer=node.committer, message=node.message)

    @property
    def summary(self) -> str:
        lines = self.message.strip().splitlines()
        return lines[0] if lines else ""


@dataclass(frozen=True)
class FieldChange:
    """One field that differs between the old and new commit."""

    field: str
    old: str
    new: str


@dataclass(frozen=True)
class HistoryEntry:
    """Old and new identity of one rewritten commit."""

    old_hash: str
    new_hash: str
    old: CommitMetadata
    new: CommitMetadata

    @property
    def short_hash(self) -> str:
        return self.old_hash[:8]

    @property
    def rehashed(self) -> bool:
        return self.old_hash != self.new_hash

    @property
    def edited(self) -> bool:
        return self.old != self.new

    def changes(self) -> list[FieldChange]:
        """Field-level differences, in display order."""
        old, new = self.old, self.new
        changes = []
        if old.author.name != new.author.name:
            changes.append(FieldChange("author", old.author.name, new.author.name))
        if old.author.email != new.author.email:
            changes.append(FieldChange("email", old.author.email, new.author.email))
        if old.committer.identity != new.committer.identity:
            changes.append(
                FieldChange("committer", str(old.committer.identity), str(new.committer.identity))
            )
        if (old.author.timestamp, old.author.offset) != (new.author.timestamp, new.author.offset):
            changes.append(
                FieldChange("date", old.author.when.isoformat(), new.author.when.isoformat())
            )
        if old.message != new.message:
            changes.append(FieldChange("message", old.summary, new.summary))
        return changes


@dataclass(frozen=True)
class HistorySummary:
    """Overview of a commit history."""

    total_commits: int
    earliest: datetime | None
    latest: datetime | None
    authors: tuple[str, ...]

    @classmethod
    def of(cls, graph: CommitGraph) -> HistorySummary:
        dates = sorted(node.author.when for node in graph)
        authors = tuple(sorted({node.author.name for node in graph}))
        return cls(
            total_commits=len(graph),
            earliest=dates[0] if dates else None,
            latest=dates[-1] if dates else None,
            authors=authors,
        )

    @property
    def span_days(self) -> int:
        if self.earliest is None or self.latest is None:
            return 0
        return (self.latest - self.earliest).days
