from __future__ import annotations

import shutil
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from convft.decoder import Decoder

if TYPE_CHECKING:
    from collections.abc import Callable

    from convft.encoder import Encoder

FILES: dict[str, bytes] = {
    "README": b"# title\n\nbody\n",
    "no_newline.txt": b"last line without newline",
    "empty.txt": b"",
    "crlf.ini": b"[a]\r\nkey=value\r\n",
    "trailing_blank.md": b"para\n\n\n",
    "src/pkg/module.py": b"def f():\n    return 'Content:'\n",
    "src/pkg/data.json": b'{"k": [1, 2]}\n',
    "docs/format.md": b"intro\nDirectoryTree (base: ., depth: 1):\nx\nEndDirectoryTree\nDirectoryTree:\ntail\n",
}


def _snapshot(root: Path) -> dict[str, bytes]:
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file() and p.name != "all_files_text.txt"
    }


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    for rel, data in FILES.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    return root


@pytest.mark.integration
def test_round_trip_reproduces_paths_and_bytes(
    project: Path,
    tmp_path: Path,
    make_encoder: Callable[..., Encoder],
) -> None:
    result = make_encoder(project).run()
    assert result.record_count == len(FILES)

    restored = tmp_path / "restored"
    restored.mkdir()
    shutil.copy(project / "all_files_text.txt", restored / "all_files_text.txt")
    decoded = Decoder(restored).run()

    assert decoded.created_count == len(FILES)
    assert decoded.skipped_count == 0
    assert _snapshot(restored) == FILES


@pytest.mark.integration
def test_decoding_twice_is_idempotent(project: Path, tmp_path: Path, make_encoder: Callable[..., Encoder]) -> None:
    make_encoder(project).run(tree_depth=2)
    restored = tmp_path / "restored"
    restored.mkdir()
    shutil.copy(project / "all_files_text.txt", restored / "all_files_text.txt")

    Decoder(restored).run()
    first = _snapshot(restored)
    Decoder(restored).run()

    assert _snapshot(restored) == first == FILES


@pytest.mark.integration
def test_default_excludes_are_not_round_tripped(
    project: Path,
    tmp_path: Path,
    make_encoder: Callable[..., Encoder],
) -> None:
    (project / "node_modules" / "lib").mkdir(parents=True)
    (project / "node_modules" / "lib" / "index.js").write_text("module.exports = 1\n", encoding="utf-8")
    (project / "src" / "pkg" / "__pycache__").mkdir()
    (project / "src" / "pkg" / "__pycache__" / "module.cpython-312.pyc").write_bytes(b"\x00\x01")

    make_encoder(project).run()
    restored = tmp_path / "restored"
    restored.mkdir()
    shutil.copy(project / "all_files_text.txt", restored / "all_files_text.txt")
    Decoder(restored).run()

    assert _snapshot(restored) == FILES
