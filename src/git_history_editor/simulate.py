"""Dry-run of a rewrite plan: same hashes as a real run, nothing written."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .graph import CommitGraph
from .plan import RewritePlan
from .rehash import rehash
from .report import FieldChange, HistoryEntry


@dataclass(frozen=True)
class SimulationStats:
    total_commits: int = 0
    commits_to_change: int = 0
    rehashed_commits: int = 0
    authors_changed: int = 0
    emails_changed: int = 0
    committers_changed: int = 0
    timestamps_changed: int = 0
    messages_changed: int = 0
    date_range: tuple[datetime, datetime] | None = None


@dataclass(frozen=True)
class SimulationReport:
    """What a rewrite would do.

    ``diffs`` maps old commit ids to their field changes and is only
    filled when a detailed report was requested.
    """

    mode: str
    stats: SimulationStats
    entries: tuple[HistoryEntry, ...]
    commit_map: dict[str, str]
    ref_targets: dict[str, str]
    diffs: dict[str, list[FieldChange]] = field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return self.stats.rehashed_commits > 0


def _stats(graph: CommitGraph, entries: list[HistoryEntry]) -> SimulationStats:
    counts = {"author": 0, "email": 0, "committer": 0, "date": 0, "message": 0}
    edited = 0
    dates: list[datetime] = []
    for entry in entries:
        changes = entry.changes()
        if changes:
            edited += 1
        for change in changes:
            counts[change.field] += 1
        if entry.edited:
            dates.append(entry.new.author.when)

    return SimulationStats(
        total_commits=len(graph),
        commits_to_change=edited,
        rehashed_commits=sum(1 for entry in entries if entry.rehashed),
        authors_changed=counts["author"],
        emails_changed=counts["email"],
        committers_changed=counts["committer"],
        timestamps_changed=counts["date"],
        messages_changed=counts["message"],
        date_range=(min(dates), max(dates)) if dates else None,
    )


def simulate(
    graph: CommitGraph,
    plan: RewritePlan,
    mode_label: str | None = None,
    detail: bool = False,
) -> SimulationReport:
    """Run the rehash pass without an object writer.

    Args:
        graph: Loaded history
        plan: Plan to preview
        mode_label: Name of the rewrite mode for display
        detail: Collect per-commit field changes

    Returns:
        SimulationReport whose ids match what a real run would produce
    """
    result = rehash(graph, plan)
    diffs = {}
    if detail:
        diffs = {entry.old_hash: entry.changes() for entry in result.entries if entry.edited}
    return SimulationReport(
        mode=mode_label if mode_label is not None else plan.label,
        stats=_stats(graph, result.entries),
        entries=tuple(result.entries),
        commit_map=dict(result.commit_map),
        ref_targets=dict(result.ref_targets),
        diffs=diffs,
    )
