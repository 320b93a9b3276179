"""Cascading rehash: rebuild planned commits in order and remap their children."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from .errors import ObjectWriteError
from .git import GitError, GitRepo
from .graph import CommitGraph, CommitNode
from .objects import commit_hash, rebuild_commit
from .plan import RewritePlan
from .report import CommitMetadata, HistoryEntry

logger = logging.getLogger(__name__)


class ObjectWriter(Protocol):
    """Destination for rebuilt commit objects."""

    def write_commit(self, body: bytes) -> str:
        """Persist a raw commit body and return its object id."""
        ...


class StoreWriter:
    """Writes commits into a repository's object store."""

    def __init__(self, repo: GitRepo) -> None:
        self.repo = repo
        self.written = 0

    def write_commit(self, body: bytes) -> str:
        commit_id = self.repo.write_object("commit", body)
        self.written += 1
        return commit_id


@dataclass
class RewriteResult:
    """Outcome of a rehash pass.

    ``commit_map`` holds an entry for every planned commit, unchanged ones
    mapping to themselves. ``ref_targets`` lists only refs whose tip moved.
    """

    commit_map: dict[str, str] = field(default_factory=dict)
    ref_targets: dict[str, str] = field(default_factory=dict)
    entries: list[HistoryEntry] = field(default_factory=list)

    @property
    def changed(self) -> list[HistoryEntry]:
        return [entry for entry in self.entries if entry.rehashed]

    def new_hash(self, commit_id: str) -> str:
        return self.commit_map.get(commit_id, commit_id)


def _metadata(node: CommitNode, new_id: str, body: bytes) -> CommitMetadata:
    if new_id == node.hash:
        return CommitMetadata.of(node)
    return CommitMetadata.of(CommitNode.from_raw(new_id, body))


def rehash(
    graph: CommitGraph,
    plan: RewritePlan,
    writer: ObjectWriter | None = None,
) -> RewriteResult:
    """Rebuild every planned commit, parents before children.

    Parents outside the plan keep their hash. A commit whose rebuilt bytes
    equal the original keeps its hash and is not written.

    Args:
        graph: History the plan was built from
        plan: Topologically ordered, descendant-closed plan
        writer: Object store to persist new commits into; None computes ids only

    Returns:
        The RewriteResult

    Raises:
        ObjectWriteError: If the writer fails or returns an unexpected id; its
            ``partial`` attribute holds the commits rewritten so far
    """
    result = RewriteResult()

    for entry in plan:
        node = graph.node(entry.commit)
        parents = [result.new_hash(p) for p in node.parents]
        author, committer = entry.edit.signatures(node)
        body = rebuild_commit(node.raw, parents, author, committer, entry.edit.message)
        new_id = node.hash if body == node.raw else commit_hash(body)

        if writer is not None and new_id != node.hash:
            try:
                stored_id = writer.write_commit(body)
            except (GitError, OSError) as e:
                logger.error("Failed to write commit replacing %s: %s", node.short_hash, e)
                raise ObjectWriteError(
                    f"Cannot write commit replacing {node.short_hash}: {e}", partial=result
                ) from e
            if stored_id != new_id:
                logger.error("Object store returned %s, expected %s", stored_id, new_id)
                raise ObjectWriteError(
                    f"Object store returned {stored_id} for commit replacing "
                    f"{node.short_hash}, expected {new_id}",
                    partial=result,
                )

        result.commit_map[node.hash] = new_id
        result.entries.append(
            HistoryEntry(
                old_hash=node.hash,
                new_hash=new_id,
                old=CommitMetadata.of(node),
                new=_metadata(node, new_id, body),
            )
        )

    for ref in graph.refs:
        new_id = result.new_hash(ref.commit)
        if new_id != ref.commit:
            result.ref_targets[ref.name] = new_id

    logger.debug(
        "Rehashed %d commits, %d changed, %d refs to move",
        len(result.entries),
        len(result.changed),
        len(result.ref_targets),
    )
    return result
