"""Narrow interfaces over the external tools convft relies on.

Each capability has a production implementation that shells out (`git`,
`file`, `tree`) and degrades gracefully when the tool is not installed.
"""

from __future__ import annotations

import mimetypes
import shutil
import subprocess  # noqa: S404
from pathlib import Path
from typing import Protocol

from convft.config import TREE_IGNORE, TREE_MISSING_NOTICE, is_text_mime
from convft.exceptions import GitCommandError
from convft.logging import logger


class VersionControl(Protocol):
    """Queries against a version-control working tree."""

    def repo_root(self, start: Path) -> Path | None:
        """Return the repository root containing `start`, or None outside a working tree."""
        ...

    def list_files(self, root: Path) -> list[str]:
        """Return tracked plus untracked-but-not-ignored files, relative to `root`."""
        ...

    def check_ignore(self, root: Path, path: Path) -> bool:
        """Return True if `path` is ignored by the rules of the repository at `root`."""
        ...


class ContentTypeDetector(Protocol):
    """Reports the MIME type of a file."""

    def mime_type(self, path: Path) -> str:
        ...


class TreeLister(Protocol):
    """Renders a depth-limited listing of a directory."""

    def render(self, base: Path, depth: int) -> list[str]:
        ...


def _run(args: list[str], cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    return subprocess.run(  # noqa: S603
        args,
        cwd=str(cwd) if cwd is not None else None,
        text=True,
        capture_output=True,
        check=False,
    )


class GitVersionControl:
    """`VersionControl` backed by the `git` executable."""

    def __init__(self, git_bin: str = "git") -> None:
        self.git_bin = git_bin

    @property
    def available(self) -> bool:
        return shutil.which(self.git_bin) is not None

    def repo_root(self, start: Path) -> Path | None:
        if not self.available:
            return None
        probe = start if start.is_dir() else start.parent
        while not probe.exists() and probe != probe.parent:
            probe = probe.parent
        try:
            out = _run([self.git_bin, "-C", str(probe), "rev-parse", "--show-toplevel"])
        except OSError as e:
            logger.warning("git_unavailable", error=str(e))
            return None
        if out.returncode != 0 or not out.stdout.strip():
            return None
        return Path(out.stdout.strip()).resolve()

    def _entries(self, root: Path, *args: str) -> list[str]:
        """Run a NUL-terminated git listing; paths come back unquoted."""
        command = [self.git_bin, "-C", str(root), *args, "-z"]
        out = _run(command)
        if out.returncode != 0:
            raise GitCommandError(
                command=" ".join(command),
                returncode=out.returncode,
                stdout=out.stdout,
                stderr=out.stderr,
            )
        return [entry for entry in out.stdout.split("\0") if entry]

    def list_files(self, root: Path) -> list[str]:
        tracked = self._entries(root, "ls-files")
        untracked = self._entries(root, "ls-files", "--others", "--exclude-standard")
        return sorted(set(tracked) | set(untracked))

    def check_ignore(self, root: Path, path: Path) -> bool:
        out = _run([self.git_bin, "-C", str(root), "check-ignore", "-q", "--no-index", str(path)])
        if out.returncode not in {0, 1}:
            logger.warning("git_check_ignore_failed", path=str(path), stderr=out.stderr.strip())
        return out.returncode == 0


def sniff_text_utf8(path: Path, nbytes: int = 4096) -> bool:
    """Check if path points to a utf-8 encoded text file.

    Args:
        path (Path): path to test.
        nbytes (int, optional): number of bytes to read for testing. Defaults to 4096.

    Returns:
        bool: True if the first `nbytes` decode as utf-8, False otherwise.
    """
    try:
        with path.open("rb") as f:
            chunk = f.read(nbytes)
        chunk.decode("utf-8")
    except (OSError, UnicodeDecodeError):
        return False
    else:
        return True


class SniffingDetector:
    """In-process `ContentTypeDetector` used when `file` is not installed."""

    def mime_type(self, path: Path) -> str:
        try:
            if path.stat().st_size == 0:
                return "inode/x-empty"
        except OSError:
            return "application/octet-stream"
        if not sniff_text_utf8(path):
            return "application/octet-stream"
        guessed, _ = mimetypes.guess_type(path.name)
        if guessed and is_text_mime(guessed):
            return guessed
        return "text/plain"


class FileCommandDetector:
    """`ContentTypeDetector` backed by `file --brief --mime-type`."""

    def __init__(self, file_bin: str = "file", fallback: ContentTypeDetector | None = None) -> None:
        self.file_bin = file_bin
        self.fallback = fallback or SniffingDetector()

    def mime_type(self, path: Path) -> str:
        if shutil.which(self.file_bin) is None:
            return self.fallback.mime_type(path)
        try:
            out = _run([self.file_bin, "--brief", "--mime-type", str(path)])
        except OSError as e:
            logger.warning("file_command_failed", path=str(path), error=str(e))
            return self.fallback.mime_type(path)
        if out.returncode != 0:
            logger.warning("file_command_failed", path=str(path), stderr=out.stderr.strip())
            return self.fallback.mime_type(path)
        return out.stdout.strip()


class TreeCommandLister:
    """`TreeLister` backed by the `tree` executable."""

    def __init__(self, tree_bin: str = "tree") -> None:
        self.tree_bin = tree_bin

    def render(self, base: Path, depth: int) -> list[str]:
        if depth == 0:
            return []
        if shutil.which(self.tree_bin) is None:
            logger.warning("tree_command_missing", base=str(base))
            return [TREE_MISSING_NOTICE]
        try:
            out = _run(
                [self.tree_bin, "-a", "-L", str(depth), "-I", TREE_IGNORE, "--noreport"],
                cwd=base,
            )
        except OSError as e:
            logger.warning("tree_command_failed", base=str(base), error=str(e))
            return [f"Error running tree on {base}"]
        if out.returncode != 0:
            logger.warning("tree_command_failed", base=str(base), stderr=out.stderr.strip())
            return [f"Error running tree on {base}"]
        return out.stdout.splitlines()
