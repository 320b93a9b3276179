"""Typed failures raised by the rewrite engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .refs import RefUpdateReport
    from .rehash import RewriteResult


class GitHistoryEditorError(Exception):
    """Base class for all git-history-editor errors."""

    pass


class RepositoryAccessError(GitHistoryEditorError):
    """The repository or one of its references cannot be resolved or read."""

    pass


class CorruptHistoryError(GitHistoryEditorError):
    """The commit graph is incomplete or cyclic."""

    pass


class InvalidRangeError(GitHistoryEditorError):
    """A timestamp window cannot produce the requested instants."""

    pass


class InvalidRangeSelectionError(GitHistoryEditorError):
    """A commit range or its field restriction is inconsistent."""

    pass


class CommitNotFoundError(GitHistoryEditorError):
    """A requested commit is not part of the loaded history."""

    pass


class MissingIdentityError(GitHistoryEditorError):
    """No author identity was supplied and no default is available."""

    pass


class ValidationError(GitHistoryEditorError):
    """User input failed validation."""

    pass


class ObjectWriteError(GitHistoryEditorError):
    """The object store rejected a commit write.

    ``partial`` holds the rewrite result built before the failure. No
    reference has been touched when this is raised.
    """

    def __init__(self, message: str, partial: RewriteResult | None = None) -> None:
        super().__init__(message)
        self.partial = partial


class ReferenceUpdateError(GitHistoryEditorError):
    """One or more references could not be repointed.

    ``report`` lists the references that moved and the ones that failed,
    each with its cause.
    """

    def __init__(self, message: str, report: RefUpdateReport) -> None:
        super().__init__(message)
        self.report = report
