"""Files-to-text conversion.

The encoder writes the artifact in one pass: an optional directory-tree
header followed by one ``Filepath:``/``Content:`` record per text file.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import IO, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from convft.capabilities import GitVersionControl, TreeCommandLister
from convft.classifier import ContentClassifier
from convft.config import (
    ARTIFACT_NAME,
    CONTENT_MARKER,
    FILEPATH_MARKER,
    RECORD_TRAILER,
    TREE_END_MARKER,
    ExclusionDefaults,
)
from convft.exceptions import PathResolutionError
from convft.exclusion import ExclusionEngine
from convft.logging import logger
from convft.paths import CandidatePath, PathResolver
from convft.walker import TreeWalker

if TYPE_CHECKING:
    from collections.abc import Sequence

    from convft.capabilities import ContentTypeDetector, TreeLister, VersionControl


class ArtifactRecord(BaseModel):
    """One file's entry in the artifact."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Path as displayed in the artifact")
    content: bytes = Field(default=b"", description="Raw file content")

    def render(self) -> bytes:
        """Serialize the record, trailer included."""
        head = f"{FILEPATH_MARKER}{self.path}\n{CONTENT_MARKER}\n".encode()
        return head + self.content + RECORD_TRAILER


class EncodeResult(BaseModel):
    """Summary of an encode run."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    artifact: Path
    record_count: int = Field(default=0, ge=0)
    skipped_count: int = Field(default=0, ge=0)


def render_tree_header(base: str, depth: int, lines: Sequence[str]) -> str:
    """Render the decorative directory tree block.

    Args:
        base (str): the tree base as displayed
        depth (int): the listing depth
        lines (Sequence[str]): listing lines, opaque

    Returns:
        str: the header block, blank separator line included
    """
    out = [f"DirectoryTree (base: {base}, depth: {depth}):", *lines, TREE_END_MARKER, ""]
    return "\n".join(out) + "\n"


class Encoder:
    """Serialize files under the working directory into the artifact."""

    def __init__(
        self,
        workdir: Path,
        *,
        artifact_name: str = ARTIFACT_NAME,
        vcs: VersionControl | None = None,
        detector: ContentTypeDetector | None = None,
        tree_lister: TreeLister | None = None,
        defaults: ExclusionDefaults | None = None,
    ) -> None:
        self.resolver = PathResolver(workdir)
        self.artifact_path = self.resolver.workdir / artifact_name
        self.vcs: VersionControl = vcs if vcs is not None else GitVersionControl()
        self.classifier = ContentClassifier(detector)
        self.tree_lister: TreeLister = tree_lister or TreeCommandLister()
        self.defaults = defaults or ExclusionDefaults(artifact_name=artifact_name)

    def resolve_includes(self, include_paths: Sequence[str]) -> list[CandidatePath]:
        """Resolve include arguments, warning about and dropping the bad ones."""
        roots: list[CandidatePath] = []
        for raw in include_paths:
            try:
                candidate = self.resolver.resolve(raw)
            except PathResolutionError as e:
                logger.warning("include_path_unresolvable", path=raw, reason=e.reason)
                continue
            if not candidate.exists:
                logger.warning("include_path_missing", path=str(candidate.canonical))
                continue
            roots.append(candidate)
        return roots

    def tree_base(self, roots: Sequence[CandidatePath]) -> tuple[Path, str]:
        """Directory the tree header is rendered from, and how it is displayed."""
        if roots:
            first = roots[0]
            base = first.canonical if first.is_dir else first.canonical.parent
            return base, str(base)
        return self.resolver.workdir, "."

    def run(
        self,
        include_paths: Sequence[str] = (),
        exclude_patterns: Sequence[str] = (),
        tree_depth: int = 1,
    ) -> EncodeResult:
        """Write the artifact.

        Args:
            include_paths (Sequence[str]): explicit include roots; empty selects
                version-control or filesystem discovery from the working directory
            exclude_patterns (Sequence[str]): user exclusion patterns
            tree_depth (int): depth of the directory tree header

        Returns:
            EncodeResult: number of records written and files skipped
        """
        engine = ExclusionEngine.build(
            self.resolver,
            user_patterns=exclude_patterns,
            artifact_path=self.artifact_path,
            defaults=self.defaults,
            vcs=self.vcs,
        )
        explicit = bool(include_paths)
        roots = self.resolve_includes(include_paths) if explicit else []
        if explicit and not roots:
            logger.warning("no_valid_include_paths", include=list(include_paths))

        logger.info("encode_started", artifact=str(self.artifact_path))
        records = 0
        skipped = 0
        with self.artifact_path.open("wb") as out:
            base, base_display = self.tree_base(roots)
            lines = self.tree_lister.render(base, tree_depth)
            out.write(render_tree_header(base_display, tree_depth, lines).encode())

            walker = TreeWalker(self.resolver, self.vcs)
            for candidate in walker.discover(roots, explicit_include_mode=explicit):
                reason = engine.explain(candidate)
                if reason is not None:
                    logger.info("skipping_excluded", path=self.resolver.display(candidate.canonical), rule=reason)
                    skipped += 1
                    continue
                if self._write_record(out, candidate):
                    records += 1
                else:
                    skipped += 1

        if records == 0:
            logger.warning("no_files_processed", hint="check include/exclude options and file types")
        logger.info("encode_completed", records=records, skipped=skipped, artifact=str(self.artifact_path))
        return EncodeResult(artifact=self.artifact_path, record_count=records, skipped_count=skipped)

    def _write_record(self, out: IO[bytes], candidate: CandidatePath) -> bool:
        path = candidate.canonical
        display = self.resolver.display(path)
        if path == self.artifact_path:
            return False
        if not candidate.is_file or not os.access(path, os.R_OK):
            logger.warning("skipping_unreadable", path=display)
            return False
        verdict = self.classifier.classify(path)
        if not verdict.accepted:
            logger.info("skipping_non_text", path=display, reason=verdict.reason, mime_type=verdict.mime_type)
            return False
        try:
            content = path.read_bytes()
        except OSError as e:
            logger.warning("skipping_unreadable", path=display, error=str(e))
            return False
        out.write(ArtifactRecord(path=display, content=content).render())
        logger.info("processing", path=display)
        return True
