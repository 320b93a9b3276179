"""HistoryRewriter: drives loading, planning, simulation and rewriting."""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Literal

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from .errors import (
    MissingIdentityError,
    ObjectWriteError,
    ReferenceUpdateError,
    RepositoryAccessError,
    ValidationError,
)
from .git import GitRepo
from .graph import CommitGraph, load_commit_graph
from .identity import default_identity
from .objects import Identity
from .plan import (
    EditableField,
    EditSpec,
    FullMode,
    RangeMode,
    RewriteMode,
    RewritePlan,
    SpecificMode,
    plan_rewrite,
    select_range,
)
from .prompts import InteractivePrompter
from .refs import RefUpdateReport, update_references
from .rehash import RewriteResult, StoreWriter, rehash
from .report import HistorySummary
from .simulate import SimulationReport, simulate
from .timestamps import DATE_FORMAT, format_datetime
from .validation import is_remote, validate_date, validate_window

logger = logging.getLogger(__name__)

Mode = Literal["full", "specific", "range"]


@dataclass
class RewriteOptions:
    """Options for the history rewriter."""

    repo: str | None = None
    mode: Mode | None = None
    refs: tuple[str, ...] = ("HEAD",)
    include_tags: bool = False

    identity: Identity | None = None
    start: datetime | None = None
    end: datetime | None = None
    message: str | None = None
    commits: tuple[str, ...] = ()
    range_commits: tuple[str, str] | None = None
    fields: EditableField = EditableField.ALL

    allow_duplicate_timestamps: bool = False
    spread: Literal["uniform", "random"] = "uniform"
    seed: int | None = None
    date_format: str = DATE_FORMAT

    simulate: bool = False
    show_diff: bool = False
    show_history: bool = False
    create_backup: bool = True
    assume_yes: bool = False
    quiet: bool = False
    verbose: bool = False


@dataclass
class RewriteOutcome:
    """What a completed rewrite changed."""

    result: RewriteResult
    refs: RefUpdateReport
    backup_branch: str | None = None
    changed: int = field(init=False)

    def __post_init__(self) -> None:
        self.changed = len(self.result.changed)


class HistoryRewriter:
    """Rewrites commit metadata across a repository's history.

    Use as a context manager so a cloned remote is removed afterwards.
    """

    def __init__(
        self,
        options: RewriteOptions | None = None,
        console: Console | None = None,
        prompter: InteractivePrompter | None = None,
    ) -> None:
        self.options = options or RewriteOptions()
        self.console = console or Console(quiet=self.options.quiet)
        self.prompter = prompter or InteractivePrompter(
            self.console, date_format=self.options.date_format
        )
        self._temp_dir: str | None = None

        target = self.options.repo
        if target and is_remote(target):
            self.repo = GitRepo(self._clone_repo(target))
        else:
            self.repo = GitRepo(Path(target).resolve() if target else None)

    def __enter__(self) -> HistoryRewriter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def is_clone(self) -> bool:
        return self._temp_dir is not None

    def _clone_repo(self, repo_url: str) -> Path:
        """Clone a remote repository to a temporary directory."""
        if not self.options.quiet:
            self.console.print(f"[blue]Cloning repository: {repo_url}[/]")

        self._temp_dir = tempfile.mkdtemp(prefix="git-history-editor-")
        try:
            subprocess.run(
                ["git", "clone", repo_url, self._temp_dir],
                check=True,
                capture_output=True,
                text=True,
            )
        except (subprocess.CalledProcessError, OSError) as e:
            self.close()
            stderr = getattr(e, "stderr", None) or str(e)
            raise RepositoryAccessError(f"Failed to clone repository {repo_url}: {stderr}") from e
        logger.debug("Cloned %s into %s", repo_url, self._temp_dir)
        return Path(self._temp_dir)

    def close(self) -> None:
        """Remove the temporary clone, if any."""
        if self._temp_dir:
            shutil.rmtree(self._temp_dir, ignore_errors=True)
            self._temp_dir = None

    def _fmt(self, when: datetime | None) -> str:
        return format_datetime(when, self.options.date_format) if when else "-"

    def load_graph(self) -> CommitGraph:
        return load_commit_graph(
            self.repo, refs=self.options.refs, include_tags=self.options.include_tags
        )

    def show_history(self, graph: CommitGraph, title: str = "Commit History Summary") -> None:
        """Print a summary and the commit list, newest first."""
        summary = HistorySummary.of(graph)
        self.console.print(f"\n[bold green]{title}:[/]")
        self.console.print("[cyan]" + "-" * 60 + "[/]")
        self.console.print(f"[bold]Total Commits[/]: [yellow]{summary.total_commits}[/]")
        if summary.total_commits:
            self.console.print(f"[bold]Date Span[/]: [yellow]{summary.span_days}[/] days")
            self.console.print(
                f"[bold]Date Range[/]: [blue]{self._fmt(summary.earliest)}[/] to "
                f"[blue]{self._fmt(summary.latest)}[/]"
            )
            self.console.print(f"[bold]Unique Authors[/]: [yellow]{len(summary.authors)}[/]")
            if len(summary.authors) <= 5:
                self.console.print(f"[bold]Authors[/]: [magenta]{', '.join(summary.authors)}[/]")
        self.console.print("[cyan]" + "=" * 60 + "[/]")

        self.console.print("\n[bold green]Detailed Commit History:[/]")
        self.console.print("[cyan]" + "-" * 60 + "[/]")
        for node in reversed(graph.nodes):
            self.console.print(
                f"[bold yellow]{node.short_hash}[/] [blue]{self._fmt(node.author.when)}[/] "
                f"[magenta]{node.author.name}[/] {node.summary}",
                highlight=False,
            )
        self.console.print("[cyan]" + "=" * 60 + "[/]")

    def _ask_date(self, label: str) -> datetime:
        fmt = self.options.date_format
        return validate_date(self.prompter.ask(f"[bold]{label} ({fmt.replace('%', '')})[/]"), label, fmt)

    def _full_mode(self) -> FullMode:
        opts = self.options
        start = opts.start or self._ask_date("Start timestamp")
        end = opts.end or self._ask_date("End timestamp")
        validate_window(start, end)
        return FullMode(
            start=start,
            end=end,
            identity=opts.identity,
            message=opts.message,
            allow_duplicates=opts.allow_duplicate_timestamps,
            spread=opts.spread,
            seed=opts.seed,
        )

    def _specific_mode(self, graph: CommitGraph) -> SpecificMode:
        opts = self.options
        commits = list(opts.commits) or self.prompter.select_commits(graph)

        edits: dict[str, EditSpec] = {}
        if opts.identity or opts.start or opts.message is not None:
            for name in commits:
                # A new author identity carries over to the committer only with a new date.
                edits[name] = EditSpec(
                    author=opts.identity,
                    committer=opts.identity if opts.start else None,
                    message=opts.message,
                    timestamp=opts.start,
                )
            return SpecificMode(edits)

        for name in commits:
            commit_id = graph.resolve(name)
            node = graph.node(commit_id)
            self.prompter.show_commit_details(graph, node)
            edit = self.prompter.ask_edit(node)
            self.prompter.show_planned_edit(node, edit)
            edits[commit_id] = edit
        return SpecificMode(edits)

    def _range_mode(self, graph: CommitGraph) -> RangeMode:
        opts = self.options
        start, end = opts.range_commits or self.prompter.select_range(graph)
        window = None
        if opts.start or opts.end:
            if not (opts.start and opts.end):
                raise ValidationError("A range time window needs both --begin and --end")
            validate_window(opts.start, opts.end)
            window = (opts.start, opts.end)

        span = select_range(graph, start, end)
        edits: dict[str, EditSpec] = {}
        if opts.message is not None:
            edits = {commit_id: EditSpec(message=opts.message) for commit_id in span}
        elif opts.identity is None and window is None:
            self.console.print(
                f"\n[bold green]Selected {len(span)} commits.[/] "
                "Answer for each commit whether to edit it."
            )
            for commit_id in span:
                node = graph.node(commit_id)
                if self.prompter.confirm(f"Edit {node.short_hash} {node.summary}?"):
                    edits[commit_id] = self.prompter.ask_edit(node, opts.fields)

        return RangeMode(
            start=start,
            end=end,
            fields=opts.fields,
            edits=edits,
            identity=opts.identity,
            window=window,
            allow_duplicates=opts.allow_duplicate_timestamps,
        )

    def build_mode(self, graph: CommitGraph) -> RewriteMode:
        mode = self.options.mode
        if mode == "full":
            return self._full_mode()
        if mode == "specific":
            return self._specific_mode(graph)
        if mode == "range":
            return self._range_mode(graph)
        raise ValidationError(f"Unknown rewrite mode: {mode!r}")

    def plan(self, graph: CommitGraph) -> RewritePlan:
        mode = self.build_mode(graph)
        fallback = None
        if isinstance(mode, FullMode) and mode.identity is None:
            fallback = default_identity(self.repo)
            if fallback is None:
                raise MissingIdentityError(
                    "No author given and no user.name/user.email in git config"
                )
        return plan_rewrite(graph, mode, fallback)

    def print_simulation(self, report: SimulationReport) -> None:
        out = self.console.print
        out("\n[bold cyan]🔍 SIMULATION MODE - no changes will be made[/]")
        out("\n[bold cyan]📊 SIMULATION SUMMARY[/]")
        out("[cyan]" + "=" * 50 + "[/]")
        s = report.stats
        out(f"[bold]Operation Mode[/]: [yellow]{report.mode}[/]")
        out(f"[bold]Total Commits[/]: {s.total_commits}")
        out(f"[bold]Commits to Change[/]: [yellow]{s.commits_to_change}[/]")
        out(f"[bold]Commits to Rehash[/]: [yellow]{s.rehashed_commits}[/]")
        if s.commits_to_change:
            out("\n[bold]Changes Breakdown:[/]")
            for label, count in (
                ("Author names", s.authors_changed),
                ("Author emails", s.emails_changed),
                ("Committers", s.committers_changed),
                ("Timestamps", s.timestamps_changed),
                ("Messages", s.messages_changed),
            ):
                if count:
                    out(f"  • {label}: {count}")
        if s.date_range:
            out("\n[bold]Date Range:[/]")
            out(f"  From: [blue]{self._fmt(s.date_range[0])}[/]")
            out(f"  To:   [blue]{self._fmt(s.date_range[1])}[/]")
        if report.ref_targets:
            out("\n[bold]References to Move:[/]")
            for name, target in report.ref_targets.items():
                out(f"  {name} -> [yellow]{target[:8]}[/]")

        if self.options.show_diff:
            out("\n[bold cyan]📋 DETAILED CHANGE PREVIEW[/]")
            out("[cyan]" + "=" * 70 + "[/]")
            if not report.diffs:
                out("[green]No changes to display.[/]")
            for entry in report.entries:
                changes = report.diffs.get(entry.old_hash)
                if not changes:
                    continue
                out(
                    f"[bold yellow]{entry.short_hash}[/] -> [yellow]{entry.new_hash[:8]}[/] "
                    f"{entry.old.summary}",
                    highlight=False,
                )
                for change in changes:
                    out(
                        f"   {change.field.capitalize()}: [red]{change.old}[/] → [green]{change.new}[/]",
                        highlight=False,
                    )
        out("\n[green]✅ Simulation complete. Run without --simulate to apply.[/]")

    def _confirm(self, question: str) -> bool:
        if self.options.assume_yes:
            return True
        return self.prompter.confirm(question)

    def apply(self, graph: CommitGraph, plan: RewritePlan) -> RewriteOutcome:
        """Write the plan's commits and move the references."""
        backup_branch = None
        if self.options.create_backup and not self.is_clone:
            branch = self.repo.get_current_branch()
            backup_branch = self.repo.create_backup_branch(
                branch if branch != "HEAD" else "detached"
            )
            if not self.options.quiet:
                self.console.print(f"\n[green]✅ Created backup branch: {backup_branch}[/]")

        writer = StoreWriter(self.repo)
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=self.console,
                disable=self.options.quiet,
            ) as progress:
                progress.add_task(f"Rewriting {len(plan)} commits...", total=None)
                result = rehash(graph, plan, writer)
            refs = update_references(self.repo, graph, result)
        except (ObjectWriteError, ReferenceUpdateError) as e:
            self.console.print(f"\n[red]❌ Error: {e}[/]")
            if isinstance(e, ReferenceUpdateError):
                for failure in e.report.failed:
                    self.console.print(f"[red]  ✗ {failure.name}: {failure.reason}[/]")
            if backup_branch:
                self.console.print(f"[yellow]Restore with: git reset --hard {backup_branch}[/]")
            raise

        logger.info("Wrote %d commits, moved %d references", writer.written, len(refs.updated))
        return RewriteOutcome(result=result, refs=refs, backup_branch=backup_branch)

    def run(self) -> RewriteOutcome | SimulationReport | None:
        """Run the configured operation.

        Returns:
            A SimulationReport in simulate mode, a RewriteOutcome after a
            rewrite, or None when nothing was written
        """
        opts = self.options
        graph = self.load_graph()

        if opts.mode is None:
            self.show_history(graph)
            return None

        if not len(graph):
            self.console.print("[yellow]No commits found.[/]")
            return None

        plan = self.plan(graph)
        if not plan:
            self.console.print("\n[green]✨ No changes needed.[/]")
            return None

        if opts.simulate:
            report = simulate(graph, plan, detail=opts.show_diff)
            self.print_simulation(report)
            return report

        if self.repo.has_uncommitted_changes():
            self.console.print("\n[yellow]⚠️  Warning: You have uncommitted changes![/]")
            if not self._confirm("Do you want to continue anyway?"):
                return None

        if self.is_clone:
            self.console.print(
                "[yellow]Rewriting a temporary clone; it is removed when the run ends.[/]"
            )
        if not opts.quiet:
            self.console.print(
                f"\n[bold red]⚠️  WARNING: This will REWRITE {len(plan)} commits of your git history![/]"
            )
        if not self._confirm("\nDo you want to proceed?"):
            self.console.print("[yellow]Operation cancelled.[/]")
            return None

        outcome = self.apply(graph, plan)
        if not opts.quiet:
            self.console.print(
                f"\n[bold green]✅ Successfully rewrote {outcome.changed} commits![/]"
            )
            for update in outcome.refs.updated:
                self.console.print(
                    f"[green]Updated {update.name}[/] -> [cyan]{update.new_target[:8]}[/]"
                )

        if opts.show_history:
            self.show_history(self.load_graph(), "Updated Commit History Summary")
        return outcome


__all__ = ["HistoryRewriter", "RewriteOptions", "RewriteOutcome"]
