"""Git operations wrapper using subprocess."""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class GitError(Exception):
    """Error during git operations."""

    pass


@dataclass(frozen=True)
class TagRef:
    """A tag reference as listed by for-each-ref."""

    name: str
    target: str
    object_type: str
    peeled: str


class GitRepo:
    """Wrapper for git operations using subprocess."""

    def __init__(self, path: str | Path | None = None) -> None:
        """Initialize git repository wrapper.

        Args:
            path: Path to the repository (defaults to current directory)
        """
        self.path = Path(path) if path else Path.cwd()

    def _run(
        self,
        *args: str,
        check: bool = True,
        input: str | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run a git command with text output.

        Args:
            *args: Git command arguments
            check: Raise exception on non-zero exit
            input: Text passed on stdin

        Returns:
            CompletedProcess result

        Raises:
            GitError: If command fails and check is True
        """
        cmd = ["git", *args]
        try:
            return subprocess.run(
                cmd,
                cwd=self.path,
                check=check,
                capture_output=True,
                input=input,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except subprocess.CalledProcessError as e:
            raise GitError(
                f"Command failed: {' '.join(cmd)}\nExit code: {e.returncode}\nStderr: {e.stderr}"
            ) from e
        except OSError as e:
            raise GitError(f"Cannot run git in {self.path}: {e}") from e

    def _run_raw(self, *args: str, input: bytes | None = None) -> bytes:
        """Run a git command and return its raw stdout."""
        cmd = ["git", *args]
        try:
            result = subprocess.run(
                cmd,
                cwd=self.path,
                check=True,
                capture_output=True,
                input=input,
            )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode("utf-8", errors="replace") if e.stderr else ""
            raise GitError(
                f"Command failed: {' '.join(cmd)}\nExit code: {e.returncode}\nStderr: {stderr}"
            ) from e
        except OSError as e:
            raise GitError(f"Cannot run git in {self.path}: {e}") from e
        return result.stdout

    def is_repository(self) -> bool:
        """Check if this is a valid git repository."""
        try:
            self._run("rev-parse", "--git-dir")
            return True
        except GitError:
            return False

    def has_uncommitted_changes(self) -> bool:
        """Check if there are uncommitted changes."""
        result = self._run("status", "--porcelain")
        return bool(result.stdout.strip())

    def get_current_branch(self) -> str:
        """Get the current branch name."""
        result = self._run("rev-parse", "--abbrev-ref", "HEAD")
        return result.stdout.strip()

    def symbolic_ref(self, name: str = "HEAD") -> str | None:
        """Return the ref a symbolic ref points to, or None when detached."""
        result = self._run("symbolic-ref", "-q", name, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def full_ref_name(self, name: str) -> str | None:
        """Expand a short ref name (``main``, ``v1.0``) to its full name."""
        result = self._run("rev-parse", "--symbolic-full-name", name, check=False)
        full = result.stdout.strip()
        if result.returncode != 0 or not full.startswith("refs/"):
            return None
        return full

    def rev_parse(self, rev: str) -> str | None:
        """Resolve a revision to an object id, or None if it does not exist."""
        result = self._run("rev-parse", "--verify", "--quiet", rev, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def list_commits(self, tips: list[str]) -> list[str]:
        """List every commit reachable from the tips, parents first."""
        result = self._run("rev-list", "--topo-order", "--reverse", *tips)
        return [line for line in result.stdout.split("\n") if line]

    def read_objects(self, object_ids: list[str]) -> dict[str, tuple[str, bytes]]:
        """Read raw objects in a single ``cat-file --batch`` round-trip.

        Returns:
            Mapping of object id to (type, body). Missing objects are absent.
        """
        if not object_ids:
            return {}
        request = "".join(f"{oid}\n" for oid in object_ids).encode("ascii")
        output = self._run_raw("cat-file", "--batch", input=request)

        objects: dict[str, tuple[str, bytes]] = {}
        pos = 0
        while pos < len(output):
            eol = output.index(b"\n", pos)
            header = output[pos:eol].decode("ascii", errors="replace").split()
            pos = eol + 1
            if len(header) != 3:
                # "<oid> missing" or "<oid> ambiguous"
                continue
            oid, obj_type, size = header[0], header[1], int(header[2])
            objects[oid] = (obj_type, output[pos : pos + size])
            pos += size + 1
        return objects

    def shallow_commits(self) -> set[str]:
        """Commits whose parents were cut off by a shallow clone."""
        result = self._run("rev-parse", "--git-path", "shallow")
        shallow_file = Path(result.stdout.strip())
        if not shallow_file.is_absolute():
            shallow_file = self.path / shallow_file
        if not shallow_file.exists():
            return set()
        return {line.strip() for line in shallow_file.read_text().splitlines() if line.strip()}

    def list_tags(self) -> list[TagRef]:
        """List tags with their direct and peeled targets."""
        result = self._run(
            "for-each-ref",
            "--format=%(refname) %(objectname) %(objecttype) %(*objectname)",
            "refs/tags",
        )
        tags = []
        for line in result.stdout.split("\n"):
            parts = line.split()
            if len(parts) < 3:
                continue
            name, target, obj_type = parts[0], parts[1], parts[2]
            peeled = parts[3] if len(parts) > 3 else target
            tags.append(TagRef(name=name, target=target, object_type=obj_type, peeled=peeled))
        return tags

    def write_object(self, obj_type: str, body: bytes) -> str:
        """Write a raw object to the object store and return its id."""
        output = self._run_raw(
            "hash-object", "-t", obj_type, "-w", "--literally", "--stdin", input=body
        )
        return output.decode("ascii").strip()

    def update_ref(
        self,
        ref: str,
        new_value: str,
        old_value: str,
        message: str,
        no_deref: bool = False,
    ) -> None:
        """Move a reference, failing if it no longer holds ``old_value``."""
        args = ["update-ref", "-m", message]
        if no_deref:
            args.append("--no-deref")
        self._run(*args, ref, new_value, old_value)

    def get_config_value(self, key: str, scope: str | None = None) -> str | None:
        """Read a git config value, optionally from one scope (``--global``)."""
        args = ["config"]
        if scope:
            args.append(f"--{scope}")
        args.extend(["--get", key])
        result = self._run(*args, check=False)
        value = result.stdout.strip()
        return value or None

    def create_backup_branch(self, base_name: str | None = None) -> str:
        """Create a backup branch of the current state.

        Args:
            base_name: Base name for the backup branch

        Returns:
            Name of the created backup branch
        """
        if base_name is None:
            base_name = self.get_current_branch()

        backup_name = f"backup-{base_name.replace('/', '-')}-{int(time.time())}"
        self._run("branch", backup_name)
        logger.info("Created backup branch %s", backup_name)
        return backup_name
