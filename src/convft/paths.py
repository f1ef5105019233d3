from __future__ import annotations

import os
import stat
from enum import StrEnum, auto
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from convft.exceptions import PathResolutionError


class PathKind(StrEnum):
    """What a canonical path points at on disk."""

    FILE = auto()
    DIRECTORY = auto()
    MISSING = auto()
    OTHER = auto()


class CandidatePath(BaseModel):
    """A filesystem path under consideration for inclusion.

    Attributes:
        raw: The string the path was built from (user input or walk entry).
        canonical: Absolute, symlink-resolved form of the path.
        kind: File, directory, missing or other (fifo, socket, ...).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    raw: str = Field(..., description="Original input string")
    canonical: Path = Field(..., description="Canonical absolute path")
    kind: PathKind = Field(..., description="Kind of filesystem entry")

    @property
    def exists(self) -> bool:
        """Whether anything exists at the canonical path."""
        return self.kind is not PathKind.MISSING

    @property
    def is_file(self) -> bool:
        return self.kind is PathKind.FILE

    @property
    def is_dir(self) -> bool:
        return self.kind is PathKind.DIRECTORY


def classify_kind(path: Path) -> PathKind:
    """Classify what lives at `path` without raising.

    Args:
        path (Path): the path to inspect (symlinks are followed)

    Returns:
        PathKind: the kind of entry, `PathKind.MISSING` when nothing can be stat'ed
    """
    try:
        st = path.stat()
    except OSError:
        return PathKind.MISSING
    if stat.S_ISREG(st.st_mode):
        return PathKind.FILE
    if stat.S_ISDIR(st.st_mode):
        return PathKind.DIRECTORY
    return PathKind.OTHER


class PathResolver:
    """Canonicalize paths against an explicit working directory."""

    def __init__(self, workdir: Path) -> None:
        self.workdir = Path(os.path.realpath(workdir))

    def canonicalize(self, value: str | Path) -> Path:
        """Return the absolute, symlink-resolved form of `value`.

        The path does not need to exist.

        Args:
            value (str | Path): a path, relative paths are anchored at the working directory

        Raises:
            PathResolutionError: if the path cannot be canonicalized (permission
                denied on an ancestor, symlink loop, ...).

        Returns:
            Path: the canonical path
        """
        raw = str(value)
        if not raw.strip():
            raise PathResolutionError(path=raw, reason="empty path")
        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            candidate = self.workdir / candidate
        try:
            return candidate.resolve(strict=False)
        except (OSError, RuntimeError) as e:
            raise PathResolutionError(path=raw, reason=str(e)) from e

    def resolve(self, value: str | Path) -> CandidatePath:
        """Build a `CandidatePath` for `value`.

        Args:
            value (str | Path): the path to resolve

        Raises:
            PathResolutionError: if the path cannot be canonicalized.

        Returns:
            CandidatePath: the canonical path and its kind
        """
        canonical = self.canonicalize(value)
        return CandidatePath(raw=str(value), canonical=canonical, kind=classify_kind(canonical))

    def relative(self, path: Path) -> str | None:
        """Path relative to the working directory, or None if `path` is outside it."""
        try:
            return path.relative_to(self.workdir).as_posix()
        except ValueError:
            return None

    def display(self, path: Path) -> str:
        """Render `path` the way it is written into the artifact.

        Relative to the working directory when expressible (this may climb
        with ``..``), absolute otherwise.

        Args:
            path (Path): a canonical path

        Returns:
            str: the display form with POSIX separators
        """
        try:
            return Path(os.path.relpath(path, self.workdir)).as_posix()
        except ValueError:
            return path.as_posix()
