"""Reference updater: repoint tracked refs at their rewritten commits."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .errors import ReferenceUpdateError
from .git import GitError, GitRepo
from .graph import CommitGraph, TrackedRef
from .objects import retarget_tag
from .rehash import RewriteResult

logger = logging.getLogger(__name__)

REFLOG_MESSAGE = "git-history-editor: rewrite history"


@dataclass(frozen=True)
class RefUpdate:
    """A reference that was moved."""

    name: str
    old_target: str
    new_target: str


@dataclass(frozen=True)
class RefFailure:
    """A reference that could not be moved."""

    name: str
    reason: str


@dataclass
class RefUpdateReport:
    updated: list[RefUpdate] = field(default_factory=list)
    failed: list[RefFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def _retarget_annotated(repo: GitRepo, ref: TrackedRef, new_commit: str) -> str:
    """Write a copy of an annotated tag object that points at ``new_commit``."""
    objects = repo.read_objects([ref.target])
    entry = objects.get(ref.target)
    if entry is None or entry[0] != "tag":
        raise GitError(f"Tag object {ref.target} for {ref.name} is missing")
    return repo.write_object("tag", retarget_tag(entry[1], new_commit))


def update_references(
    repo: GitRepo,
    graph: CommitGraph,
    result: RewriteResult,
    message: str = REFLOG_MESSAGE,
) -> RefUpdateReport:
    """Move every tracked ref whose tip was rewritten.

    Each move is a compare-and-swap against the target seen at load time,
    so a ref changed by someone else in the meantime is reported, not
    overwritten. Failures do not stop the remaining refs and nothing is
    rolled back.

    Raises:
        ReferenceUpdateError: If any ref failed to move; ``report`` lists
            both the moved and the failed refs
    """
    report = RefUpdateReport()

    for ref in graph.refs:
        new_commit = result.ref_targets.get(ref.name)
        if new_commit is None:
            continue
        try:
            new_target = new_commit
            if ref.annotated:
                new_target = _retarget_annotated(repo, ref, new_commit)
            repo.update_ref(
                ref.name, new_target, ref.target, message, no_deref=ref.is_detached_head
            )
        except GitError as e:
            logger.error("Failed to update %s: %s", ref.name, e)
            report.failed.append(RefFailure(ref.name, str(e)))
            continue
        logger.info("Updated %s: %s -> %s", ref.name, ref.target[:8], new_target[:8])
        report.updated.append(RefUpdate(ref.name, ref.target, new_target))

    if report.failed:
        names = ", ".join(failure.name for failure in report.failed)
        raise ReferenceUpdateError(f"Failed to update references: {names}", report)
    return report
