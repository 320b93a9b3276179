"""Rewrite author, committer, timestamp and message metadata of git history."""

__version__ = "1.0.0"

from .errors import GitHistoryEditorError
from .graph import CommitGraph, load_commit_graph
from .plan import EditableField, EditSpec, FullMode, RangeMode, SpecificMode, plan_rewrite
from .refs import update_references
from .rehash import rehash
from .rewriter import HistoryRewriter, RewriteOptions
from .simulate import simulate

__all__ = [
    "CommitGraph",
    "EditSpec",
    "EditableField",
    "FullMode",
    "GitHistoryEditorError",
    "HistoryRewriter",
    "RangeMode",
    "RewriteOptions",
    "SpecificMode",
    "load_commit_graph",
    "plan_rewrite",
    "rehash",
    "simulate",
    "update_references",
    "__version__",
]
