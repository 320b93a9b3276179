"""Commit graph loader: an immutable snapshot of the history to rewrite."""

from __future__ import annotations

import heapq
import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from dulwich.errors import ObjectFormatException

from .errors import CommitNotFoundError, CorruptHistoryError, RepositoryAccessError
from .git import GitError, GitRepo
from .objects import Signature, decode_message, parse_commit

logger = logging.getLogger(__name__)

MIN_PREFIX_LENGTH = 4


@dataclass(frozen=True)
class CommitNode:
    """Snapshot of one existing commit.

    ``hash`` is the digest of ``raw``; every other field is parsed from it.
    """

    hash: str
    parents: tuple[str, ...]
    tree: str
    author: Signature
    committer: Signature
    message: str
    raw: bytes = field(repr=False)

    @classmethod
    def from_raw(cls, commit_id: str, body: bytes) -> CommitNode:
        try:
            commit = parse_commit(body)
        except (ObjectFormatException, ValueError) as e:
            raise CorruptHistoryError(f"Malformed commit object {commit_id}: {e}") from e
        if commit.tree is None or commit.author is None or commit.committer is None:
            raise CorruptHistoryError(f"Malformed commit object {commit_id}")
        return cls(
            hash=commit_id,
            parents=tuple(p.decode("ascii") for p in commit.parents),
            tree=commit.tree.decode("ascii"),
            author=Signature.from_commit(commit, "author"),
            committer=Signature.from_commit(commit, "committer"),
            message=decode_message(commit),
            raw=body,
        )

    @property
    def short_hash(self) -> str:
        return self.hash[:8]

    @property
    def summary(self) -> str:
        lines = self.message.strip().splitlines()
        return lines[0] if lines else ""

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1


@dataclass(frozen=True)
class TrackedRef:
    """A reference whose tip lies in the graph.

    ``target`` is what the ref stores (a commit, or a tag object for
    annotated tags); ``commit`` is the commit it peels to.
    """

    name: str
    target: str
    commit: str
    annotated: bool = False

    @property
    def is_detached_head(self) -> bool:
        return self.name == "HEAD"


class CommitGraph:
    """Commits reachable from the tracked refs, parents before children.

    Nodes live in an arena ordered topologically; parent and child links
    are stored as indices into it.
    """

    def __init__(
        self,
        nodes: Sequence[CommitNode],
        refs: Sequence[TrackedRef] = (),
        boundary: Iterable[str] = (),
    ) -> None:
        self._nodes: tuple[CommitNode, ...] = tuple(nodes)
        self._index = {node.hash: i for i, node in enumerate(self._nodes)}
        self.refs: tuple[TrackedRef, ...] = tuple(refs)
        self.boundary = frozenset(boundary)

        self._parents: list[tuple[int, ...]] = []
        self._children: list[list[int]] = [[] for _ in self._nodes]
        for i, node in enumerate(self._nodes):
            links = tuple(self._index[p] for p in node.parents if p in self._index)
            for p in links:
                self._children[p].append(i)
            self._parents.append(links)

    @classmethod
    def from_nodes(
        cls,
        nodes: Iterable[CommitNode],
        refs: Sequence[TrackedRef] = (),
        boundary: Iterable[str] = (),
    ) -> CommitGraph:
        """Validate and topologically order a set of commits.

        ``boundary`` lists commits allowed to reference parents outside the
        set (shallow clone grafts).

        Raises:
            CorruptHistoryError: On an unresolved parent or a cycle
        """
        by_hash: dict[str, CommitNode] = {}
        discovery: dict[str, int] = {}
        for node in nodes:
            if node.hash not in by_hash:
                discovery[node.hash] = len(discovery)
                by_hash[node.hash] = node
        boundary = frozenset(boundary)

        pending: dict[str, int] = {}
        children: dict[str, list[str]] = {h: [] for h in by_hash}
        for node in by_hash.values():
            known = 0
            for parent in node.parents:
                if parent in by_hash:
                    children[parent].append(node.hash)
                    known += 1
                elif node.hash not in boundary:
                    raise CorruptHistoryError(
                        f"Commit {node.short_hash} references missing parent {parent}"
                    )
            pending[node.hash] = known

        def key(commit_id: str) -> tuple[int, int, str]:
            node = by_hash[commit_id]
            return (node.committer.timestamp, discovery[commit_id], commit_id)

        ready = [key(h) for h, count in pending.items() if count == 0]
        heapq.heapify(ready)
        ordered: list[CommitNode] = []
        while ready:
            _, _, commit_id = heapq.heappop(ready)
            ordered.append(by_hash[commit_id])
            for child in children[commit_id]:
                pending[child] -= 1
                if pending[child] == 0:
                    heapq.heappush(ready, key(child))

        if len(ordered) != len(by_hash):
            stuck = sorted(h for h, count in pending.items() if count > 0)
            raise CorruptHistoryError(f"Commit graph contains a cycle through {stuck[0][:8]}")

        missing = [ref.name for ref in refs if ref.commit not in by_hash]
        if missing:
            raise CorruptHistoryError(f"Tracked refs point outside the graph: {', '.join(missing)}")

        return cls(ordered, refs, boundary)

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[CommitNode]:
        return iter(self._nodes)

    def __contains__(self, commit_id: object) -> bool:
        return commit_id in self._index

    @property
    def nodes(self) -> tuple[CommitNode, ...]:
        return self._nodes

    def node(self, commit_id: str) -> CommitNode:
        try:
            return self._nodes[self._index[commit_id]]
        except KeyError:
            raise CommitNotFoundError(f"Commit {commit_id} is not in the loaded history") from None

    def index(self, commit_id: str) -> int:
        try:
            return self._index[commit_id]
        except KeyError:
            raise CommitNotFoundError(f"Commit {commit_id} is not in the loaded history") from None

    def resolve(self, name: str) -> str:
        """Resolve a full hash or unique prefix to a commit in the graph.

        Raises:
            CommitNotFoundError: If nothing, or more than one commit, matches
        """
        name = name.strip().lower()
        if name in self._index:
            return name
        if len(name) < MIN_PREFIX_LENGTH:
            raise CommitNotFoundError(f"Commit {name!r} is not in the loaded history")
        matches = [h for h in self._index if h.startswith(name)]
        if not matches:
            raise CommitNotFoundError(f"Commit {name!r} is not in the loaded history")
        if len(matches) > 1:
            raise CommitNotFoundError(f"Commit prefix {name!r} is ambiguous ({len(matches)} matches)")
        return matches[0]

    def parents_of(self, commit_id: str) -> list[CommitNode]:
        return [self._nodes[i] for i in self._parents[self.index(commit_id)]]

    def children_of(self, commit_id: str) -> list[CommitNode]:
        return [self._nodes[i] for i in self._children[self.index(commit_id)]]

    def descendants(self, commit_ids: Iterable[str]) -> set[str]:
        """Every commit reachable downwards from the given ones, inclusive."""
        stack = [self.index(h) for h in commit_ids]
        seen = set(stack)
        while stack:
            for child in self._children[stack.pop()]:
                if child not in seen:
                    seen.add(child)
                    stack.append(child)
        return {self._nodes[i].hash for i in seen}

    def ancestors(self, commit_id: str) -> set[str]:
        """Every commit reachable upwards from ``commit_id``, inclusive."""
        stack = [self.index(commit_id)]
        seen = set(stack)
        while stack:
            for parent in self._parents[stack.pop()]:
                if parent not in seen:
                    seen.add(parent)
                    stack.append(parent)
        return {self._nodes[i].hash for i in seen}

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """True if ``ancestor`` is ``descendant`` or one of its ancestors."""
        if self.index(ancestor) > self.index(descendant):
            return False
        return ancestor in self.ancestors(descendant)

    def ancestry_path(self, start: str, end: str) -> list[str]:
        """Commits descending from ``start`` and leading to ``end``, in order."""
        span = self.descendants([start]) & self.ancestors(end)
        return [node.hash for node in self._nodes if node.hash in span]

    def tips(self) -> list[str]:
        """Commits without children in the graph."""
        return [self._nodes[i].hash for i, kids in enumerate(self._children) if not kids]


def _track_ref(repo: GitRepo, name: str) -> TrackedRef:
    if name == "HEAD":
        branch = repo.symbolic_ref("HEAD")
        full = branch if branch else "HEAD"
    else:
        full = repo.full_ref_name(name)
        if full is None:
            raise RepositoryAccessError(f"{name!r} is not a branch or tag of {repo.path}")

    target = repo.rev_parse(full)
    commit = repo.rev_parse(f"{full}^{{commit}}")
    if target is None or commit is None:
        raise RepositoryAccessError(f"Cannot resolve reference {name!r} to a commit")
    return TrackedRef(name=full, target=target, commit=commit, annotated=target != commit)


def load_commit_graph(
    repo: GitRepo,
    refs: Sequence[str] = ("HEAD",),
    include_tags: bool = False,
) -> CommitGraph:
    """Materialize every commit reachable from ``refs``.

    Args:
        repo: Repository to read
        refs: Reference names to start from (``HEAD``, branches, tags)
        include_tags: Also track every tag that points into the loaded history

    Returns:
        A validated, topologically ordered CommitGraph

    Raises:
        RepositoryAccessError: If the repository or a reference cannot be resolved
        CorruptHistoryError: If a reachable object is missing or malformed
    """
    if not repo.is_repository():
        raise RepositoryAccessError(f"Not a git repository: {repo.path}")

    tracked: dict[str, TrackedRef] = {}
    for name in refs:
        ref = _track_ref(repo, name)
        tracked.setdefault(ref.name, ref)

    tips = sorted({ref.commit for ref in tracked.values()})
    try:
        commit_ids = repo.list_commits(tips)
    except GitError as e:
        raise CorruptHistoryError(f"Cannot walk history from {', '.join(tracked)}: {e}") from e

    objects = repo.read_objects(commit_ids)
    nodes = []
    for commit_id in commit_ids:
        entry = objects.get(commit_id)
        if entry is None:
            raise CorruptHistoryError(f"Commit object {commit_id} is missing from the store")
        obj_type, body = entry
        if obj_type != "commit":
            raise CorruptHistoryError(f"Object {commit_id} is a {obj_type}, expected a commit")
        nodes.append(CommitNode.from_raw(commit_id, body))

    if include_tags:
        in_graph = set(commit_ids)
        for tag in repo.list_tags():
            if tag.peeled in in_graph and tag.name not in tracked:
                tracked[tag.name] = TrackedRef(
                    name=tag.name,
                    target=tag.target,
                    commit=tag.peeled,
                    annotated=tag.object_type == "tag",
                )

    graph = CommitGraph.from_nodes(nodes, list(tracked.values()), repo.shallow_commits())
    logger.debug("Loaded %d commits from %d refs", len(graph), len(graph.refs))
    return graph
