from __future__ import annotations

import os
from enum import StrEnum, auto
from pathlib import Path
from typing import TYPE_CHECKING

from convft.exceptions import GitCommandError, PathResolutionError
from convft.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from convft.capabilities import VersionControl
    from convft.paths import CandidatePath, PathResolver


class DiscoveryMode(StrEnum):
    """Where candidate files come from for one run."""

    EXPLICIT = auto()
    VERSION_CONTROL = auto()
    FILESYSTEM = auto()


def walk_regular_files(root: Path) -> list[Path]:
    """Recursively list regular files under `root`, sorted by path.

    Symlinks (to files or directories) are not followed.

    Args:
        root (Path): the directory to walk

    Returns:
        list[Path]: every regular file found, sorted lexicographically
    """
    results: list[Path] = []
    for current, _dirs, files in os.walk(root, onerror=_log_walk_error):
        for f in files:
            p = Path(current) / f
            if not p.is_symlink() and p.is_file():
                results.append(p)
    return sorted(results, key=str)


def _log_walk_error(error: OSError) -> None:
    logger.warning("walk_error", path=str(error.filename), error=str(error))


class TreeWalker:
    """Enumerate candidate files for the encoder.

    The walker does not filter; every yielded path still has to go through
    the exclusion engine.
    """

    def __init__(self, resolver: PathResolver, vcs: VersionControl | None = None) -> None:
        self.resolver = resolver
        self.vcs = vcs

    @property
    def workdir(self) -> Path:
        return self.resolver.workdir

    def select_mode(self, *, explicit_include_mode: bool) -> DiscoveryMode:
        """Pick the discovery strategy for this run."""
        if explicit_include_mode:
            return DiscoveryMode.EXPLICIT
        if self._repo_root() is not None:
            return DiscoveryMode.VERSION_CONTROL
        return DiscoveryMode.FILESYSTEM

    def discover(
        self,
        include_roots: Sequence[CandidatePath],
        *,
        explicit_include_mode: bool,
    ) -> Iterator[CandidatePath]:
        """Lazily yield candidate files.

        Args:
            include_roots (Sequence[CandidatePath]): resolved include roots (explicit mode only)
            explicit_include_mode (bool): whether include paths were given

        Yields:
            CandidatePath: each discovered file, in discovery order
        """
        mode = self.select_mode(explicit_include_mode=explicit_include_mode)
        logger.info("discovery_mode", mode=str(mode), workdir=str(self.workdir))
        match mode:
            case DiscoveryMode.EXPLICIT:
                yield from self._explicit(include_roots)
            case DiscoveryMode.VERSION_CONTROL:
                yield from self._version_control(self._repo_root())
            case DiscoveryMode.FILESYSTEM:
                yield from self._filesystem(self.workdir)

    def _explicit(self, include_roots: Sequence[CandidatePath]) -> Iterator[CandidatePath]:
        for root in include_roots:
            if root.is_file:
                yield root
            elif root.is_dir:
                logger.info("processing_included_directory", path=str(root.canonical))
                yield from self._filesystem(root.canonical)

    def _filesystem(self, root: Path) -> Iterator[CandidatePath]:
        for path in walk_regular_files(root):
            candidate = self._resolve(path)
            if candidate is not None:
                yield candidate

    def _repo_root(self) -> Path | None:
        return self.vcs.repo_root(self.workdir) if self.vcs is not None else None

    def _version_control(self, repo_root: Path | None) -> Iterator[CandidatePath]:
        if self.vcs is None or repo_root is None:
            yield from self._filesystem(self.workdir)
            return
        try:
            listed = self.vcs.list_files(repo_root)
        except GitCommandError as e:
            logger.warning("git_listing_failed", command=e.command, returncode=e.returncode, stderr=e.stderr.strip())
            yield from self._filesystem(self.workdir)
            return
        logger.info("using_version_control_listing", repo_root=str(repo_root), files=len(listed))
        for rel in sorted(set(listed)):
            candidate = self._resolve(repo_root / rel)
            if candidate is None:
                continue
            if not candidate.is_file:
                logger.warning("listed_path_not_a_file", path=rel)
                continue
            yield candidate

    def _resolve(self, path: Path) -> CandidatePath | None:
        try:
            return self.resolver.resolve(path)
        except PathResolutionError as e:
            logger.warning("path_unresolvable", path=e.path, reason=e.reason)
            return None
