"""Interactive prompts for picking commits and entering edits."""

from __future__ import annotations

import re
from typing import TextIO

from rich.console import Console
from rich.prompt import Confirm, Prompt

from .errors import ValidationError
from .graph import CommitGraph, CommitNode
from .objects import Identity
from .plan import EditableField, EditSpec
from .timestamps import DATE_FORMAT, format_datetime
from .validation import validate_date, validate_email, validate_name

# Menu entries for a single commit edit: key -> (label, field that must be editable)
EDIT_OPTIONS = {
    "1": ("Author name", EditableField.AUTHOR),
    "2": ("Author email", EditableField.AUTHOR),
    "3": ("Commit timestamp", EditableField.TIMESTAMP),
    "4": ("Commit message", EditableField.MESSAGE),
    "5": ("All of the above", EditableField.ALL),
}


def parse_range_input(text: str) -> tuple[int, int]:
    """Parse ``start-end`` (1-based, inclusive) as typed by the user.

    Raises:
        ValidationError: On a malformed range, a zero start or end < start
    """
    parts = text.strip().split("-")
    if len(parts) != 2:
        raise ValidationError("Invalid range format. Use format like '5-11'")
    try:
        start = int(parts[0].strip())
    except ValueError:
        raise ValidationError("Invalid start number in range") from None
    try:
        end = int(parts[1].strip())
    except ValueError:
        raise ValidationError("Invalid end number in range") from None
    if start < 1:
        raise ValidationError("Start position must be 1 or greater")
    if end < start:
        raise ValidationError("End position must be greater than or equal to start position")
    return start, end


def parse_selection(text: str, commits: list[CommitNode]) -> list[str]:
    """Resolve a comma or space separated list of list numbers and hash prefixes.

    Numbers refer to positions in ``commits`` (1-based).
    """
    selected: list[str] = []
    for token in re.split(r"[,\s]+", text.strip()):
        if not token:
            continue
        if token.isdigit() and len(token) < 4:
            position = int(token)
            if not 1 <= position <= len(commits):
                raise ValidationError(
                    f"Selection {position} out of range. Available commits: 1-{len(commits)}"
                )
            commit_id = commits[position - 1].hash
        else:
            matches = [c.hash for c in commits if c.hash.startswith(token.lower())]
            if len(matches) != 1:
                raise ValidationError(f"{token!r} does not identify exactly one listed commit")
            commit_id = matches[0]
        if commit_id not in selected:
            selected.append(commit_id)
    if not selected:
        raise ValidationError("No commits selected")
    return selected


def display_order(graph: CommitGraph) -> list[CommitNode]:
    """Commits as listed to the user: newest first."""
    return list(reversed(graph.nodes))


class InteractivePrompter:
    """Asks the user for selections and edits on a rich console."""

    def __init__(
        self,
        console: Console | None = None,
        stream: TextIO | None = None,
        date_format: str = DATE_FORMAT,
    ) -> None:
        self.console = console or Console()
        self.stream = stream
        self.date_format = date_format

    def ask(self, label: str, default: str | None = None) -> str:
        if default is None:
            return Prompt.ask(label, console=self.console, stream=self.stream)
        return Prompt.ask(label, console=self.console, stream=self.stream, default=default)

    def confirm(self, question: str, default: bool = False) -> bool:
        return Confirm.ask(question, console=self.console, stream=self.stream, default=default)

    def show_commits(self, commits: list[CommitNode]) -> None:
        self.console.print("\n[bold green]Commit History:[/]")
        self.console.print("[cyan]" + "-" * 80 + "[/]")
        for i, node in enumerate(commits, 1):
            when = format_datetime(node.author.when, self.date_format)
            self.console.print(
                f"{i:3}. [bold yellow]{node.short_hash}[/] [blue]{when}[/] "
                f"[magenta]{node.author.name}[/] {node.summary}",
                highlight=False,
            )
        self.console.print("[cyan]" + "-" * 80 + "[/]")

    def show_commit_details(self, graph: CommitGraph, node: CommitNode) -> None:
        self.console.print("\n[bold green]Selected Commit Details:[/]")
        self.console.print(f"[bold]Hash[/]: [yellow]{node.hash}[/]")
        self.console.print(f"[bold]Author[/]: [magenta]{node.author.identity}[/]")
        self.console.print(
            f"[bold]Date[/]: [blue]{format_datetime(node.author.when, self.date_format)}[/]"
        )
        self.console.print(f"[bold]Parent Count[/]: {len(node.parents)}")
        self.console.print("\n[bold]Message:[/]")
        self.console.print(node.message.rstrip(), markup=False, highlight=False)
        for i, parent in enumerate(graph.parents_of(node.hash), 1):
            self.console.print(f"  {i}: [yellow]{parent.short_hash}[/] - {parent.summary}")

    def select_commits(self, graph: CommitGraph) -> list[str]:
        """Show the history and let the user pick commits by number or hash."""
        commits = display_order(graph)
        self.show_commits(commits)
        answer = self.ask("\n[bold green]Select commit number(s) or hash(es) to edit[/]")
        return parse_selection(answer, commits)

    def select_range(self, graph: CommitGraph) -> tuple[str, str]:
        """Let the user pick a ``start-end`` span of the listed history.

        Returns:
            (oldest commit, newest commit) of the span
        """
        commits = display_order(graph)
        self.show_commits(commits)
        answer = self.ask("\n[bold green]Enter range in format 'start-end' (e.g., '5-11')[/]")
        start, end = parse_range_input(answer)
        if end > len(commits):
            raise ValidationError(f"Range out of bounds. Available commits: 1-{len(commits)}")
        # Listing is newest first, so the larger number is the older commit.
        return commits[end - 1].hash, commits[start - 1].hash

    def ask_message(self) -> str:
        self.console.print("[bold]New commit message (end with empty line):[/]")
        lines = []
        while True:
            line = self.ask("", default="")
            if not line.strip():
                break
            lines.append(line)
        return "\n".join(lines).strip()

    def ask_edit(self, node: CommitNode, fields: EditableField = EditableField.ALL) -> EditSpec:
        """Ask which fields of ``node`` to change and their new values.

        Only options whose field is in ``fields`` are offered.
        """
        offered = {key: label for key, (label, field) in EDIT_OPTIONS.items() if field in fields}
        self.console.print(f"\n[bold green]What would you like to edit in {node.short_hash}?[/]")
        for key, label in offered.items():
            self.console.print(f"{key}. {label}")
        answer = self.ask("\n[bold]Select option(s) (comma-separated)[/]")
        choices = {c.strip() for c in answer.split(",") if c.strip() in offered}
        if "5" in choices:
            choices = {"1", "2", "3", "4"}

        name = email = message = None
        when = None
        if "1" in choices:
            name = validate_name(self.ask("[bold]New author name[/]", default=node.author.name))
        if "2" in choices:
            email = validate_email(
                self.ask("[bold]New author email[/]", default=node.author.email)
            )
        if "3" in choices:
            when = validate_date(
                self.ask(f"[bold]New timestamp ({self.date_format.replace('%', '')})[/]"),
                "timestamp",
                self.date_format,
            )
        if "4" in choices:
            message = self.ask_message()

        identity = None
        if name is not None or email is not None:
            identity = Identity(name or node.author.name, email or node.author.email)
        # A new author identity carries over to the committer only with a new date.
        committer = identity if when is not None else None
        return EditSpec(author=identity, committer=committer, message=message, timestamp=when)

    def show_planned_edit(self, node: CommitNode, edit: EditSpec) -> None:
        self.console.print(f"\n[bold yellow]Planned changes for {node.short_hash}:[/]")
        if edit.author is not None:
            if edit.author.name != node.author.name:
                self.console.print(f"  Author name: [red]{node.author.name}[/] -> [green]{edit.author.name}[/]")
            if edit.author.email != node.author.email:
                self.console.print(f"  Author email: [red]{node.author.email}[/] -> [green]{edit.author.email}[/]")
        if edit.timestamp is not None:
            old = format_datetime(node.author.when, self.date_format)
            new = format_datetime(edit.timestamp, self.date_format)
            self.console.print(f"  Timestamp: [red]{old}[/] -> [green]{new}[/]")
        if edit.message is not None:
            new_summary = edit.message.strip().splitlines()[0] if edit.message.strip() else ""
            self.console.print(f"  Message: [red]{node.summary}[/] -> [green]{new_summary}[/]")
