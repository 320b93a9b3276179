"""Rewrite planner: turns a commit graph and a mode into a RewritePlan."""

from __future__ import annotations

import enum
import logging
import random
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Union

from .errors import CommitNotFoundError, InvalidRangeSelectionError, MissingIdentityError
from .graph import CommitGraph, CommitNode
from .objects import Identity, Signature
from .timestamps import distribute_timestamps, scatter_timestamps

logger = logging.getLogger(__name__)


class EditableField(enum.Flag):
    """Fields a range edit may touch."""

    NONE = 0
    MESSAGE = enum.auto()
    AUTHOR = enum.auto()
    TIMESTAMP = enum.auto()
    ALL = MESSAGE | AUTHOR | TIMESTAMP

    @classmethod
    def from_flags(cls, message: bool = False, author: bool = False, time: bool = False) -> EditableField:
        """Build a restriction from CLI-style flags; no flag means every field."""
        fields = cls.NONE
        if message:
            fields |= cls.MESSAGE
        if author:
            fields |= cls.AUTHOR
        if time:
            fields |= cls.TIMESTAMP
        return fields or cls.ALL


@dataclass(frozen=True)
class EditSpec:
    """Per-commit override. ``None`` keeps the original value.

    ``timestamp`` sets both the author and the committer date.
    """

    author: Identity | None = None
    committer: Identity | None = None
    message: str | None = None
    timestamp: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.author is None
            and self.committer is None
            and self.message is None
            and self.timestamp is None
        )

    @property
    def fields(self) -> EditableField:
        """The fields this edit sets."""
        fields = EditableField.NONE
        if self.author is not None or self.committer is not None:
            fields |= EditableField.AUTHOR
        if self.message is not None:
            fields |= EditableField.MESSAGE
        if self.timestamp is not None:
            fields |= EditableField.TIMESTAMP
        return fields

    def merged(self, override: EditSpec) -> EditSpec:
        """Combine with ``override``, whose set fields win."""
        return EditSpec(
            author=override.author if override.author is not None else self.author,
            committer=override.committer if override.committer is not None else self.committer,
            message=override.message if override.message is not None else self.message,
            timestamp=override.timestamp if override.timestamp is not None else self.timestamp,
        )

    def signatures(self, node: CommitNode) -> tuple[Signature | None, Signature | None]:
        """New author and committer lines for ``node``, or None to keep them."""
        author = committer = None
        if self.author is not None or self.timestamp is not None:
            author = node.author.replace(identity=self.author, when=self.timestamp)
        if self.committer is not None or self.timestamp is not None:
            committer = node.committer.replace(identity=self.committer, when=self.timestamp)
        return author, committer


EMPTY_EDIT = EditSpec()


@dataclass(frozen=True)
class FullMode:
    """Rewrite every commit with one identity over a time window."""

    start: datetime
    end: datetime
    identity: Identity | None = None
    message: str | None = None
    allow_duplicates: bool = False
    spread: Literal["uniform", "random"] = "uniform"
    seed: int | None = None


@dataclass(frozen=True)
class SpecificMode:
    """Rewrite exactly the named commits, each with its own edit."""

    edits: Mapping[str, EditSpec] = field(default_factory=dict)


@dataclass(frozen=True)
class RangeMode:
    """Rewrite the commits between two boundaries, both inclusive.

    ``identity`` and ``window`` apply to the whole span; ``edits`` override
    them per commit. Only the fields in ``fields`` may be set.
    """

    start: str
    end: str
    fields: EditableField = EditableField.ALL
    edits: Mapping[str, EditSpec] = field(default_factory=dict)
    identity: Identity | None = None
    window: tuple[datetime, datetime] | None = None
    allow_duplicates: bool = False


RewriteMode = Union[FullMode, SpecificMode, RangeMode]


@dataclass(frozen=True)
class PlanEntry:
    """One commit scheduled for rehashing."""

    commit: str
    edit: EditSpec = EMPTY_EDIT
    cascaded: bool = False


@dataclass(frozen=True)
class RewritePlan:
    """Commits to rewrite, in the graph's topological order.

    Every descendant of a planned commit is planned too, with an empty
    edit when it only needs rehashing.
    """

    entries: tuple[PlanEntry, ...]
    label: str = ""

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[PlanEntry]:
        return iter(self.entries)

    def __contains__(self, commit_id: object) -> bool:
        return any(entry.commit == commit_id for entry in self.entries)

    @property
    def commits(self) -> list[str]:
        return [entry.commit for entry in self.entries]

    @property
    def edited(self) -> list[PlanEntry]:
        return [entry for entry in self.entries if not entry.cascaded]

    @property
    def cascaded(self) -> list[PlanEntry]:
        return [entry for entry in self.entries if entry.cascaded]

    def edit_for(self, commit_id: str) -> EditSpec | None:
        for entry in self.entries:
            if entry.commit == commit_id:
                return entry.edit
        return None


def close_plan(graph: CommitGraph, edits: Mapping[str, EditSpec], label: str = "") -> RewritePlan:
    """Add every descendant of the selected commits and order the result."""
    scheduled = set(edits)
    closure = graph.descendants(scheduled) if scheduled else set()
    entries = []
    for node in graph:
        if node.hash in edits:
            entries.append(PlanEntry(node.hash, edits[node.hash]))
        elif node.hash in closure:
            entries.append(PlanEntry(node.hash, EMPTY_EDIT, cascaded=True))
    plan = RewritePlan(tuple(entries), label)
    logger.debug(
        "Planned %d commits (%d edited, %d cascaded)",
        len(plan),
        len(plan.edited),
        len(plan.cascaded),
    )
    return plan


def _timestamps(
    start: datetime,
    end: datetime,
    count: int,
    allow_duplicates: bool,
    spread: str = "uniform",
    seed: int | None = None,
) -> list[datetime]:
    if spread == "random":
        return scatter_timestamps(start, end, count, rng=random.Random(seed))
    return distribute_timestamps(start, end, count, allow_duplicates=allow_duplicates)


def plan_full(
    graph: CommitGraph, mode: FullMode, default_identity: Identity | None = None
) -> RewritePlan:
    """Select every commit, one identity, timestamps across the window."""
    identity = mode.identity or default_identity
    if identity is None:
        raise MissingIdentityError("Full rewrite needs an author name and email")
    if not len(graph):
        return RewritePlan((), mode_label(graph, mode))

    stamps = _timestamps(
        mode.start, mode.end, len(graph), mode.allow_duplicates, mode.spread, mode.seed
    )
    edits = {
        node.hash: EditSpec(
            author=identity, committer=identity, message=mode.message, timestamp=when
        )
        for node, when in zip(graph, stamps)
    }
    return close_plan(graph, edits, mode_label(graph, mode))


def plan_specific(graph: CommitGraph, mode: SpecificMode) -> RewritePlan:
    """Select exactly the named commits.

    Raises:
        CommitNotFoundError: If a name does not resolve to a commit in the graph
    """
    edits: dict[str, EditSpec] = {}
    for name, edit in mode.edits.items():
        commit_id = graph.resolve(name)
        edits[commit_id] = edits.get(commit_id, EMPTY_EDIT).merged(edit)
    return close_plan(graph, edits, mode_label(graph, mode))


def select_range(graph: CommitGraph, start: str, end: str) -> list[str]:
    """Resolve range boundaries to the commits between them.

    Raises:
        InvalidRangeSelectionError: If a boundary is missing or ``start`` is
            not an ancestor of (or equal to) ``end``
    """
    try:
        start_id, end_id = graph.resolve(start), graph.resolve(end)
    except CommitNotFoundError as e:
        raise InvalidRangeSelectionError(str(e)) from e
    if not graph.is_ancestor(start_id, end_id):
        raise InvalidRangeSelectionError(
            f"{start_id[:8]} is not an ancestor of {end_id[:8]}"
        )
    return graph.ancestry_path(start_id, end_id)


def plan_range(graph: CommitGraph, mode: RangeMode) -> RewritePlan:
    """Select the span between two boundaries and apply restricted edits.

    Raises:
        InvalidRangeSelectionError: On bad boundaries, an edit outside the
            span, or an edit touching a field outside ``mode.fields``
    """
    span = select_range(graph, mode.start, mode.end)

    bulk = EditSpec(
        author=mode.identity,
        committer=mode.identity,
    )
    stamps: list[datetime | None] = [None] * len(span)
    if mode.window is not None:
        stamps = list(
            _timestamps(mode.window[0], mode.window[1], len(span), mode.allow_duplicates)
        )

    overrides: dict[str, EditSpec] = {}
    for name, edit in mode.edits.items():
        try:
            commit_id = graph.resolve(name)
        except CommitNotFoundError as e:
            raise InvalidRangeSelectionError(str(e)) from e
        if commit_id not in span:
            raise InvalidRangeSelectionError(f"Commit {commit_id[:8]} is outside the selected range")
        overrides[commit_id] = overrides.get(commit_id, EMPTY_EDIT).merged(edit)

    edits: dict[str, EditSpec] = {}
    for commit_id, when in zip(span, stamps):
        edit = EditSpec(author=bulk.author, committer=bulk.committer, timestamp=when)
        edit = edit.merged(overrides.get(commit_id, EMPTY_EDIT))
        disallowed = edit.fields & ~mode.fields
        if disallowed:
            names = ", ".join(
                f.name.lower()
                for f in (EditableField.MESSAGE, EditableField.AUTHOR, EditableField.TIMESTAMP)
                if f in disallowed
            )
            raise InvalidRangeSelectionError(
                f"Field(s) {names} are not editable in this range edit"
            )
        if not edit.is_empty:
            edits[commit_id] = edit
    return close_plan(graph, edits, mode_label(graph, mode))


def mode_label(graph: CommitGraph, mode: RewriteMode) -> str:
    if isinstance(mode, FullMode):
        return "Full Repository Rewrite"
    if isinstance(mode, SpecificMode):
        return "Specific Commit Edit"
    return f"Range Edit ({mode.start[:8]}..{mode.end[:8]})"


def plan_rewrite(
    graph: CommitGraph,
    mode: RewriteMode,
    default_identity: Identity | None = None,
) -> RewritePlan:
    """Build the RewritePlan for ``mode``, closed over descendants.

    Args:
        graph: Loaded commit graph
        mode: FullMode, SpecificMode or RangeMode
        default_identity: Fallback identity for a full rewrite

    Returns:
        The plan, in topological order
    """
    if isinstance(mode, FullMode):
        return plan_full(graph, mode, default_identity)
    if isinstance(mode, SpecificMode):
        return plan_specific(graph, mode)
    if isinstance(mode, RangeMode):
        return plan_range(graph, mode)
    raise TypeError(f"Unknown rewrite mode: {type(mode).__name__}")
