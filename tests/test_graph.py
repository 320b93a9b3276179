"""Commit graph tests."""

import pytest

from conftest import make_node, requires_git

from git_history_editor.errors import (
    CommitNotFoundError,
    CorruptHistoryError,
    RepositoryAccessError,
)
from git_history_editor.graph import CommitGraph, CommitNode, load_commit_graph
from git_history_editor.git import GitRepo
from git_history_editor.objects import Signature


class TestCommitGraph:
    def test_nodes_are_ordered_parents_first(self, linear_graph):
        messages = [node.summary for node in linear_graph]
        assert messages == ["first", "second", "third", "fourth"]

    def test_merge_order_and_links(self, merge_graph):
        order = [node.summary for node in merge_graph]
        assert order[0] == "root"
        assert order[-1] == "merge"
        merge = merge_graph.nodes[-1]
        assert merge.is_merge
        assert [p.summary for p in merge_graph.parents_of(merge.hash)] == ["left", "right"]
        root = merge_graph.nodes[0]
        assert {c.summary for c in merge_graph.children_of(root.hash)} == {"left", "right"}

    def test_missing_parent_is_corrupt(self):
        orphan = make_node(["f" * 40])
        with pytest.raises(CorruptHistoryError, match="missing parent"):
            CommitGraph.from_nodes([orphan])

    def test_shallow_boundary_allows_missing_parent(self):
        orphan = make_node(["f" * 40])
        graph = CommitGraph.from_nodes([orphan], boundary=[orphan.hash])
        assert len(graph) == 1
        assert graph.parents_of(orphan.hash) == []

    def test_commit_without_author_is_corrupt(self):
        body = b"tree " + b"0" * 40 + b"\n\nno author\n"
        with pytest.raises(CorruptHistoryError, match="Malformed"):
            CommitNode.from_raw("a" * 40, body)

    def test_cycle_is_corrupt(self):
        sig = Signature("a", "a@example.com", 0)
        a = CommitNode("a" * 40, ("b" * 40,), "0" * 40, sig, sig, "a\n", b"")
        b = CommitNode("b" * 40, ("a" * 40,), "0" * 40, sig, sig, "b\n", b"")
        with pytest.raises(CorruptHistoryError, match="cycle"):
            CommitGraph.from_nodes([a, b])

    def test_resolve_prefix(self, linear_graph):
        node = linear_graph.nodes[1]
        assert linear_graph.resolve(node.hash[:10]) == node.hash
        assert linear_graph.resolve(node.hash.upper()) == node.hash

    def test_resolve_unknown_or_short(self, linear_graph):
        with pytest.raises(CommitNotFoundError):
            linear_graph.resolve("0000000")
        with pytest.raises(CommitNotFoundError):
            linear_graph.resolve(linear_graph.nodes[0].hash[:2])

    def test_descendants_and_ancestors(self, merge_graph):
        root, left, right, merge = (node.hash for node in merge_graph)
        assert merge_graph.descendants([left]) == {left, merge}
        assert merge_graph.ancestors(merge) == {root, left, right, merge}
        assert merge_graph.is_ancestor(root, merge)
        assert not merge_graph.is_ancestor(left, right)

    def test_ancestry_path(self, merge_graph):
        root, left, right, merge = (node.hash for node in merge_graph)
        assert merge_graph.ancestry_path(root, merge) == [root, left, right, merge]
        assert merge_graph.ancestry_path(left, merge) == [left, merge]

    def test_tips(self, merge_graph):
        assert merge_graph.tips() == [merge_graph.nodes[-1].hash]


@requires_git
class TestLoadCommitGraph:
    def test_load_linear_history(self, linear_repo):
        graph = load_commit_graph(linear_repo.repo)
        assert [node.summary for node in graph] == ["first", "second", "third"]
        assert [ref.name for ref in graph.refs] == ["refs/heads/main"]
        assert graph.refs[0].commit == linear_repo.head()

    def test_hashes_match_store(self, linear_repo):
        graph = load_commit_graph(linear_repo.repo)
        for node in graph:
            assert linear_repo.git("rev-parse", node.hash) == node.hash

    def test_detached_head(self, linear_repo):
        linear_repo.git("checkout", "-q", "--detach", "HEAD~1")
        graph = load_commit_graph(linear_repo.repo)
        assert graph.refs[0].is_detached_head
        assert len(graph) == 2

    def test_include_tags(self, linear_repo):
        linear_repo.git("tag", "light", "HEAD~1")
        linear_repo.git("tag", "-a", "annotated", "-m", "release", "HEAD~2")
        graph = load_commit_graph(linear_repo.repo, include_tags=True)
        refs = {ref.name: ref for ref in graph.refs}
        assert not refs["refs/tags/light"].annotated
        assert refs["refs/tags/annotated"].annotated
        assert refs["refs/tags/annotated"].commit == linear_repo.head("HEAD~2")

    def test_unknown_ref(self, linear_repo):
        with pytest.raises(RepositoryAccessError):
            load_commit_graph(linear_repo.repo, refs=["no-such-branch"])

    def test_not_a_repository(self, tmp_path):
        with pytest.raises(RepositoryAccessError):
            load_commit_graph(GitRepo(tmp_path))
