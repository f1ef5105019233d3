from __future__ import annotations

from pathlib import Path

import pytest

from convft.exceptions import PathResolutionError
from convft.paths import PathKind, PathResolver


@pytest.mark.unit
def test_resolve_classifies_file_directory_and_missing(tmp_path: Path) -> None:
    (tmp_path / "dir").mkdir()
    (tmp_path / "dir" / "f.txt").write_text("x", encoding="utf-8")
    resolver = PathResolver(tmp_path)

    assert resolver.resolve("dir").kind is PathKind.DIRECTORY
    assert resolver.resolve("dir/f.txt").kind is PathKind.FILE
    missing = resolver.resolve("dir/nope.txt")
    assert missing.kind is PathKind.MISSING
    assert not missing.exists
    assert missing.canonical == tmp_path.resolve() / "dir" / "nope.txt"


@pytest.mark.unit
def test_resolve_keeps_raw_input_and_follows_symlinks(tmp_path: Path) -> None:
    target = tmp_path / "real.txt"
    target.write_text("x", encoding="utf-8")
    (tmp_path / "link.txt").symlink_to(target)
    resolver = PathResolver(tmp_path)

    candidate = resolver.resolve("link.txt")

    assert candidate.raw == "link.txt"
    assert candidate.canonical == target.resolve()
    assert candidate.is_file


@pytest.mark.unit
def test_canonicalize_rejects_empty_input(tmp_path: Path) -> None:
    with pytest.raises(PathResolutionError) as exc_info:
        PathResolver(tmp_path).canonicalize("  ")

    assert exc_info.value.reason == "empty path"


@pytest.mark.unit
def test_display_is_relative_when_possible(tmp_path: Path) -> None:
    workdir = tmp_path / "work"
    workdir.mkdir()
    resolver = PathResolver(workdir)

    assert resolver.display(resolver.workdir / "sub" / "b.txt") == "sub/b.txt"
    assert resolver.display(tmp_path.resolve() / "other.txt") == "../other.txt"
    assert resolver.relative(tmp_path.resolve() / "other.txt") is None
