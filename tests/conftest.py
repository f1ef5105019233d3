from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from convft.config import TREE_MISSING_NOTICE
from convft.encoder import Encoder

if TYPE_CHECKING:
    from collections.abc import Callable


class FakeVersionControl:
    """In-memory `VersionControl`: a single repository rooted at `root`."""

    def __init__(
        self,
        root: Path | None = None,
        files: list[str] | None = None,
        ignored: set[str] | None = None,
    ) -> None:
        self.root = root.resolve() if root is not None else None
        self.files = files or []
        self.ignored = ignored or set()
        self.check_calls: list[Path] = []

    def repo_root(self, start: Path) -> Path | None:
        if self.root is None:
            return None
        try:
            start.resolve().relative_to(self.root)
        except ValueError:
            return None
        return self.root

    def list_files(self, root: Path) -> list[str]:
        return list(self.files)

    def check_ignore(self, root: Path, path: Path) -> bool:
        self.check_calls.append(path)
        return path.relative_to(root).as_posix() in self.ignored


class FakeDetector:
    """Treat files containing NUL bytes as binary, empty files as empty, the rest as text."""

    def __init__(self, overrides: dict[str, str] | None = None) -> None:
        self.overrides = overrides or {}

    def mime_type(self, path: Path) -> str:
        if path.name in self.overrides:
            return self.overrides[path.name]
        data = path.read_bytes()
        if not data:
            return "inode/x-empty"
        if b"\x00" in data:
            return "application/octet-stream"
        return "text/plain"


class FakeTreeLister:
    """Returns canned lines, or the missing-tool notice when `lines` is None."""

    def __init__(self, lines: list[str] | None = None) -> None:
        self.lines = lines
        self.calls: list[tuple[Path, int]] = []

    def render(self, base: Path, depth: int) -> list[str]:
        self.calls.append((base, depth))
        if self.lines is None:
            return [TREE_MISSING_NOTICE]
        return list(self.lines)


@pytest.fixture
def no_vcs() -> FakeVersionControl:
    return FakeVersionControl()


@pytest.fixture
def detector() -> FakeDetector:
    return FakeDetector()


@pytest.fixture
def tree_lister() -> FakeTreeLister:
    return FakeTreeLister(lines=[".", "├── a.txt", "└── sub"])


@pytest.fixture
def make_encoder(
    no_vcs: FakeVersionControl,
    detector: FakeDetector,
    tree_lister: FakeTreeLister,
) -> Callable[..., Encoder]:
    def factory(workdir: Path, **overrides: object) -> Encoder:
        kwargs: dict[str, object] = {"vcs": no_vcs, "detector": detector, "tree_lister": tree_lister}
        kwargs.update(overrides)
        return Encoder(workdir, **kwargs)  # type: ignore[arg-type]

    return factory


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """A project with `a.txt` ("hello") and `sub/b.txt` ("world")."""
    project = tmp_path / "project"
    (project / "sub").mkdir(parents=True)
    (project / "a.txt").write_bytes(b"hello")
    (project / "sub" / "b.txt").write_bytes(b"world")
    return project
