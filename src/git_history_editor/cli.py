"""CLI interface for git-history-editor."""

from __future__ import annotations

import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import get_config
from .errors import GitHistoryEditorError
from .git import GitError
from .objects import Identity
from .plan import EditableField
from .rewriter import HistoryRewriter, RewriteOptions
from .validation import (
    validate_date,
    validate_email,
    validate_flags,
    validate_name,
    validate_repo_location,
)

console = Console()
err_console = Console(stderr=True)


def setup_logging(level: str, verbose: bool = False) -> None:
    """Send library logs through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=verbose)],
        force=True,
    )


def _identity(name: str | None, email: str | None) -> Identity | None:
    if name is None and email is None:
        return None
    if name is None or email is None:
        raise click.UsageError("--name and --email must be given together")
    return Identity(validate_name(name), validate_email(email))


@click.command()
@click.option(
    "-r",
    "--repo-path",
    help="Repository to edit (local path or remote URL, defaults to current directory)",
)
@click.option("--email", help="Email for rewritten commits")
@click.option("-n", "--name", help="Name for rewritten commits")
@click.option("-b", "--begin", help='Start timestamp, e.g. "2023-01-01 00:00:00"')
@click.option("-e", "--end", help='End timestamp, e.g. "2023-01-07 23:59:59"')
@click.option(
    "-s",
    "--show-history",
    is_flag=True,
    help="Show the commit history (after the rewrite when editing)",
)
@click.option(
    "-p",
    "--pick-specific-commits",
    is_flag=True,
    help="Edit selected commits only",
)
@click.option(
    "-c",
    "--commit",
    "commits",
    multiple=True,
    help="Commit hash or prefix to edit (with -p; prompts when omitted)",
)
@click.option(
    "-x",
    "--range",
    "range_mode",
    is_flag=True,
    help="Edit a contiguous range of commits",
)
@click.option(
    "--from",
    "range_from",
    help="Oldest commit of the range (with -x; prompts when omitted)",
)
@click.option(
    "--to",
    "range_to",
    help="Newest commit of the range (with -x)",
)
@click.option(
    "--message",
    "edit_message",
    is_flag=True,
    help="Range edit: allow changing commit messages",
)
@click.option(
    "--author",
    "edit_author",
    is_flag=True,
    help="Range edit: allow changing author name and email",
)
@click.option(
    "--time",
    "edit_time",
    is_flag=True,
    help="Range edit: allow changing timestamps",
)
@click.option(
    "-m",
    "--new-message",
    help="Replacement commit message",
)
@click.option(
    "--simulate",
    is_flag=True,
    help="Show what would change without modifying the repository",
)
@click.option(
    "--show-diff",
    is_flag=True,
    help="Show per-commit field changes (requires --simulate)",
)
@click.option(
    "--ref",
    "refs",
    multiple=True,
    help="Branch or tag to rewrite (repeatable, defaults to HEAD)",
)
@click.option(
    "--include-tags/--no-include-tags",
    default=None,
    help="Also move tags that point into the rewritten history",
)
@click.option(
    "--allow-duplicate-timestamps/--no-allow-duplicate-timestamps",
    default=None,
    help="Accept repeated timestamps when the window is too narrow",
)
@click.option(
    "--spread",
    type=click.Choice(["uniform", "random"]),
    default=None,
    help="How full-rewrite timestamps are spread across the window",
)
@click.option("--seed", type=int, help="Random seed for --spread random")
@click.option(
    "--skip-backup",
    is_flag=True,
    help="Skip creating a backup branch (not recommended)",
)
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation")
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Suppress all informational output",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Show debug logs and full tracebacks",
)
@click.version_option(__version__)
def main(
    repo_path: str | None,
    email: str | None,
    name: str | None,
    begin: str | None,
    end: str | None,
    show_history: bool,
    pick_specific_commits: bool,
    commits: tuple[str, ...],
    range_mode: bool,
    range_from: str | None,
    range_to: str | None,
    edit_message: bool,
    edit_author: bool,
    edit_time: bool,
    new_message: str | None,
    simulate: bool,
    show_diff: bool,
    refs: tuple[str, ...],
    include_tags: bool | None,
    allow_duplicate_timestamps: bool | None,
    spread: str | None,
    seed: int | None,
    skip_backup: bool,
    yes: bool,
    quiet: bool,
    verbose: bool,
) -> None:
    """Rewrite author, committer, date and message of git commits.

    \b
    Examples:
      # Spread all commits over one week with a new identity
      git-history-editor --email me@example.com --name "Me" \\
          --begin "2023-01-01 00:00:00" --end "2023-01-07 23:59:59"

      # Preview the same rewrite with per-commit changes
      git-history-editor ... --simulate --show-diff

      # Pick specific commits interactively
      git-history-editor -p

      # Only change messages in a range
      git-history-editor -x --message

      # Show the history
      git-history-editor -s
    """
    config = get_config()
    setup_logging(config.log_level, verbose)

    try:
        validate_flags(simulate, show_diff)
        if pick_specific_commits and range_mode:
            raise click.UsageError("--pick-specific-commits and --range are mutually exclusive")
        if (range_from is None) != (range_to is None):
            raise click.UsageError("--from and --to must be given together")
        if repo_path:
            validate_repo_location(repo_path)

        identity = _identity(name, email)
        start = validate_date(begin, "start date", config.date_format) if begin else None
        finish = validate_date(end, "end date", config.date_format) if end else None

        if pick_specific_commits:
            mode = "specific"
        elif range_mode:
            mode = "range"
        elif identity or start or finish or new_message is not None:
            mode = "full"
        elif show_history:
            mode = None
        else:
            mode = "full"

        options = RewriteOptions(
            repo=repo_path,
            mode=mode,
            refs=refs or ("HEAD",),
            include_tags=config.include_tags if include_tags is None else include_tags,
            identity=identity,
            start=start,
            end=finish,
            message=new_message,
            commits=commits,
            range_commits=(range_from, range_to) if range_from and range_to else None,
            fields=EditableField.from_flags(edit_message, edit_author, edit_time),
            allow_duplicate_timestamps=(
                config.allow_duplicate_timestamps
                if allow_duplicate_timestamps is None
                else allow_duplicate_timestamps
            ),
            spread=spread or config.spread,
            seed=seed,
            date_format=config.date_format,
            simulate=simulate,
            show_diff=show_diff,
            show_history=show_history,
            create_backup=config.create_backup and not skip_backup,
            assume_yes=yes,
            quiet=quiet,
            verbose=verbose,
        )

        with HistoryRewriter(options, console=Console(quiet=quiet)) as rewriter:
            rewriter.run()

    except click.UsageError:
        raise
    except (GitHistoryEditorError, GitError) as e:
        if verbose:
            err_console.print_exception()
        else:
            err_console.print(f"\n[red]❌ Error: {e}[/]")
        sys.exit(1)
    except (KeyboardInterrupt, EOFError):
        err_console.print("\n[yellow]Operation cancelled.[/]")
        sys.exit(130)


if __name__ == "__main__":
    main()
