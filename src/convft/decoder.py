"""Text-to-files conversion.

Decoding is split in two layers: `advance` is a pure transition function
over `DecodeCursor`, and `Decoder` applies the resulting actions to the
filesystem.
"""

from __future__ import annotations

from enum import StrEnum, auto
from pathlib import Path
from typing import IO, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from convft.config import (
    ARTIFACT_NAME,
    CONTENT_MARKER,
    FILEPATH_MARKER,
    RECORD_TRAILER,
    TREE_END_MARKER,
    TREE_START_PATTERN,
)
from convft.exceptions import ArtifactMissingError, PathResolutionError, RecordError
from convft.logging import logger
from convft.paths import PathResolver

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

INVALID_TARGETS = frozenset({"", ".", "/"})


class DecodeState(StrEnum):
    IN_TREE_HEADER = auto()
    AWAITING_BLOCK = auto()
    IN_CONTENT = auto()


class DecodeAction(StrEnum):
    IGNORE = auto()
    OPEN_TARGET = auto()
    REJECT_PATH = auto()
    APPEND = auto()


class DecodeCursor(BaseModel):
    """Transient decode context.

    Attributes:
        state: Current state of the line-oriented state machine.
        target: Path of the record being written, None when no record is active.
    """

    model_config = ConfigDict(frozen=True)

    state: DecodeState = DecodeState.AWAITING_BLOCK
    target: str | None = None

    @property
    def content_pending(self) -> bool:
        """A target is open but its ``Content:`` marker has not been seen yet."""
        return self.target is not None and self.state is DecodeState.AWAITING_BLOCK

    def drop_target(self) -> DecodeCursor:
        return DecodeCursor(state=DecodeState.AWAITING_BLOCK, target=None)


class Transition(BaseModel):
    model_config = ConfigDict(frozen=True)

    cursor: DecodeCursor
    action: DecodeAction = DecodeAction.IGNORE
    path: str | None = None


def advance(cursor: DecodeCursor, line: str) -> Transition:
    """Compute the next cursor and the side effect for one artifact line.

    Rules are evaluated top to bottom; the first match wins. A tree-header
    start line inside record content is content, not a marker.

    Args:
        cursor (DecodeCursor): the current context
        line (str): the line without its terminator

    Returns:
        Transition: the new cursor, the action to perform and, for
            `OPEN_TARGET`/`REJECT_PATH`, the extracted path
    """
    if cursor.state is not DecodeState.IN_CONTENT and TREE_START_PATTERN.match(line):
        return Transition(cursor=DecodeCursor(state=DecodeState.IN_TREE_HEADER))
    if cursor.state is DecodeState.IN_TREE_HEADER:
        if line == TREE_END_MARKER:
            return Transition(cursor=DecodeCursor(state=DecodeState.AWAITING_BLOCK))
        return Transition(cursor=cursor)
    if line.startswith(FILEPATH_MARKER):
        path = line.removeprefix(FILEPATH_MARKER)
        if path in INVALID_TARGETS:
            return Transition(cursor=cursor.drop_target(), action=DecodeAction.REJECT_PATH, path=path)
        return Transition(
            cursor=DecodeCursor(state=DecodeState.AWAITING_BLOCK, target=path),
            action=DecodeAction.OPEN_TARGET,
            path=path,
        )
    if line == CONTENT_MARKER and cursor.content_pending:
        return Transition(cursor=DecodeCursor(state=DecodeState.IN_CONTENT, target=cursor.target))
    if cursor.state is DecodeState.IN_CONTENT and cursor.target is not None:
        return Transition(cursor=cursor, action=DecodeAction.APPEND)
    return Transition(cursor=cursor)


def split_terminator(raw: bytes) -> str:
    """Decode an artifact line for marker matching, dropping its terminator."""
    return raw.rstrip(b"\n").rstrip(b"\r").decode("utf-8", errors="surrogateescape")


class DecodeResult(BaseModel):
    """Summary of a decode run."""

    model_config = ConfigDict(frozen=True)

    created_count: int = Field(default=0, ge=0)
    skipped_count: int = Field(default=0, ge=0)


class TargetWriter:
    """Append-only writer that withholds the record trailer.

    The last two bytes written are held back; on close they are dropped if
    they are the ``\\n\\n`` trailer the encoder adds after each record.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._fh: IO[bytes] = path.open("wb")
        self._held = b""

    def write(self, data: bytes) -> None:
        buf = self._held + data
        keep = len(RECORD_TRAILER)
        self._fh.write(buf[:-keep] if len(buf) > keep else b"")
        self._held = buf[-keep:] if len(buf) > keep else buf

    def close(self) -> None:
        if self._held != RECORD_TRAILER:
            self._fh.write(self._held)
        self._held = b""
        self._fh.close()


class Decoder:
    """Materialize files from the artifact in the working directory."""

    def __init__(self, workdir: Path, *, artifact_name: str = ARTIFACT_NAME) -> None:
        self.resolver = PathResolver(workdir)
        self.artifact_path = self.resolver.workdir / artifact_name

    def target_path(self, path: str) -> Path:
        """Where a record path is written: relative paths are anchored at the working directory."""
        target = Path(path)
        if not target.is_absolute():
            target = self.resolver.workdir / target
        return target

    def open_target(self, path: str, line_number: int) -> TargetWriter:
        """Create parent directories and truncate the target.

        Raises:
            RecordError: if the directory or the file cannot be created.
        """
        target = self.target_path(path)
        try:
            canonical = self.resolver.canonicalize(target)
        except PathResolutionError as e:
            raise RecordError(line_number=line_number, path=path, reason=e.reason) from e
        if canonical == self.resolver.canonicalize(self.artifact_path):
            raise RecordError(line_number=line_number, path=path, reason="target is the artifact itself")
        if self.resolver.relative(canonical) is None:
            logger.warning("target_outside_workdir", line=line_number, path=path)
        parent = target.parent
        if not parent.is_dir():
            logger.info("creating_directory", line=line_number, path=str(parent))
            try:
                parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise RecordError(line_number=line_number, path=path, reason=f"cannot create directory: {e}") from e
        try:
            writer = TargetWriter(target)
        except OSError as e:
            raise RecordError(line_number=line_number, path=path, reason=f"cannot create file: {e}") from e
        logger.info("creating_file", line=line_number, path=path)
        return writer

    def iter_lines(self) -> Iterator[bytes]:
        with self.artifact_path.open("rb") as fh:
            yield from fh

    def run(self) -> DecodeResult:
        """Decode the artifact.

        Raises:
            ArtifactMissingError: if the artifact does not exist.

        Returns:
            DecodeResult: files created and records skipped
        """
        if not self.artifact_path.is_file():
            raise ArtifactMissingError(path=self.artifact_path)
        logger.info("decode_started", artifact=str(self.artifact_path))
        result = self.apply(self.iter_lines())
        logger.info("decode_completed", created=result.created_count, skipped=result.skipped_count)
        return result

    def apply(self, lines: Iterable[bytes]) -> DecodeResult:
        """Run the state machine over raw artifact lines, writing targets as it goes."""
        cursor = DecodeCursor()
        writer: TargetWriter | None = None
        created = 0
        skipped = 0
        try:
            for line_number, raw in enumerate(lines, start=1):
                step = advance(cursor, split_terminator(raw))
                cursor = step.cursor
                match step.action:
                    case DecodeAction.APPEND:
                        if writer is not None:
                            writer.write(raw)
                    case DecodeAction.REJECT_PATH:
                        self._close(writer)
                        writer = None
                        logger.error("invalid_filepath", line=line_number, path=step.path)
                    case DecodeAction.OPEN_TARGET:
                        self._close(writer)
                        writer = None
                        try:
                            writer = self.open_target(step.path or "", line_number)
                        except RecordError as e:
                            logger.error("record_skipped", line=e.line_number, path=e.path, reason=e.reason)
                            cursor = cursor.drop_target()
                            skipped += 1
                        else:
                            created += 1
                    case DecodeAction.IGNORE:
                        pass
        finally:
            self._close(writer)
        return DecodeResult(created_count=created, skipped_count=skipped)

    @staticmethod
    def _close(writer: TargetWriter | None) -> None:
        if writer is not None:
            writer.close()
