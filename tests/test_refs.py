"""Reference updater tests against real repositories."""

import pytest

from git_history_editor.errors import ReferenceUpdateError
from git_history_editor.graph import load_commit_graph
from git_history_editor.plan import EditSpec, SpecificMode, plan_rewrite
from git_history_editor.refs import update_references
from git_history_editor.rehash import StoreWriter, rehash


def rewrite_first_message(builder, include_tags=False, refs=("HEAD",)):
    graph = load_commit_graph(builder.repo, refs=refs, include_tags=include_tags)
    first = graph.nodes[0].hash
    plan = plan_rewrite(graph, SpecificMode({first: EditSpec(message="rewritten first")}))
    result = rehash(graph, plan, StoreWriter(builder.repo))
    return graph, result


def test_branch_moves_to_rewritten_tip(linear_repo):
    graph, result = rewrite_first_message(linear_repo)
    report = update_references(linear_repo.repo, graph, result)

    assert report.ok
    assert [u.name for u in report.updated] == ["refs/heads/main"]
    assert linear_repo.head("main") == result.ref_targets["refs/heads/main"]
    assert linear_repo.message("main~2") == "rewritten first"
    assert linear_repo.message("main") == "third"


def test_written_objects_hash_as_computed(linear_repo):
    graph, result = rewrite_first_message(linear_repo)
    for new_id in result.commit_map.values():
        assert linear_repo.object_exists(new_id)
        assert linear_repo.git("cat-file", "-t", new_id) == "commit"


def test_stale_ref_is_reported(linear_repo):
    graph, result = rewrite_first_message(linear_repo)
    linear_repo.commit("concurrent change")
    moved = linear_repo.head()

    with pytest.raises(ReferenceUpdateError) as excinfo:
        update_references(linear_repo.repo, graph, result)
    report = excinfo.value.report
    assert [f.name for f in report.failed] == ["refs/heads/main"]
    assert report.updated == []
    assert linear_repo.head("main") == moved


def test_failure_does_not_stop_other_refs(linear_repo):
    linear_repo.git("branch", "other")
    graph, result = rewrite_first_message(
        linear_repo, refs=("refs/heads/main", "refs/heads/other")
    )
    linear_repo.git("checkout", "-q", "other")
    linear_repo.commit("moves other")

    with pytest.raises(ReferenceUpdateError) as excinfo:
        update_references(linear_repo.repo, graph, result)
    report = excinfo.value.report
    assert [u.name for u in report.updated] == ["refs/heads/main"]
    assert [f.name for f in report.failed] == ["refs/heads/other"]


def test_annotated_tag_is_recreated(linear_repo):
    linear_repo.git("tag", "-a", "v1", "-m", "release one", "HEAD~1")
    old_tag = linear_repo.head("refs/tags/v1")
    graph, result = rewrite_first_message(linear_repo, include_tags=True)
    update_references(linear_repo.repo, graph, result)

    new_tag = linear_repo.head("refs/tags/v1")
    assert new_tag != old_tag
    assert linear_repo.git("cat-file", "-t", new_tag) == "tag"
    assert linear_repo.head("v1^{commit}") == linear_repo.head("main~1")
    assert "release one" in linear_repo.git("cat-file", "-p", new_tag)


def test_detached_head_is_moved(linear_repo):
    linear_repo.git("checkout", "-q", "--detach", "HEAD")
    old_main = linear_repo.head("main")
    graph, result = rewrite_first_message(linear_repo)
    update_references(linear_repo.repo, graph, result)

    assert linear_repo.head("main") == old_main
    assert linear_repo.head("HEAD") == result.ref_targets["HEAD"]
    assert linear_repo.message("HEAD~2") == "rewritten first"


def tree_sequence(builder, rev):
    return builder.git("log", "--format=%T", rev).split()


def test_moved_refs_keep_tree_history(linear_repo):
    linear_repo.git("tag", "light", "HEAD~1")
    linear_repo.git("tag", "-a", "v1", "-m", "release one", "HEAD")
    names = ("main", "light", "v1")
    before = {name: tree_sequence(linear_repo, name) for name in names}
    old_commits = {name: linear_repo.head(f"{name}^{{commit}}") for name in names}

    graph, result = rewrite_first_message(linear_repo, include_tags=True)
    update_references(linear_repo.repo, graph, result)

    for name in names:
        assert tree_sequence(linear_repo, name) == before[name]
        assert linear_repo.head(f"{name}^{{commit}}") == result.commit_map[old_commits[name]]
