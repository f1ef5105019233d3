from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from convft import __version__, capabilities, cli
from convft.exceptions import UserInputError

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.mark.unit
def test_parse_args_encode_options(tmp_path: Path) -> None:
    command, settings = cli.parse_args(
        ["ft", "-i", "src", "docs", "-e", "build.sh", "-e", "tmp", "-t", "3"],
        workdir=tmp_path,
    )

    assert command is cli.Command.ENCODE
    assert settings.include == ["src", "docs"]
    assert settings.exclude == ["build.sh", "tmp"]
    assert settings.tree_depth == 3
    assert settings.workdir == tmp_path.resolve()


@pytest.mark.unit
def test_parse_args_aliases(tmp_path: Path) -> None:
    assert cli.parse_args(["encode"], workdir=tmp_path)[0] is cli.Command.ENCODE
    assert cli.parse_args(["decode"], workdir=tmp_path)[0] is cli.Command.DECODE


@pytest.mark.unit
@pytest.mark.parametrize("depth", ["abc", "-1", "1.5"])
def test_parse_args_rejects_bad_tree_depth(tmp_path: Path, depth: str) -> None:
    with pytest.raises(UserInputError):
        cli.parse_args(["ft", "--tree-depth", depth], workdir=tmp_path)


@pytest.mark.unit
def test_parse_args_tree_depth_from_dotenv(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CONVFT_TREE_DEPTH", raising=False)
    (tmp_path / ".env").write_text("CONVFT_TREE_DEPTH=5\n", encoding="utf-8")

    _, settings = cli.parse_args(["ft"], workdir=tmp_path)

    assert settings.tree_depth == 5


@pytest.mark.unit
def test_parse_args_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["--version"])

    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


@pytest.mark.unit
def test_main_bad_depth_aborts_before_io(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    mocker: MockerFixture,
) -> None:
    monkeypatch.chdir(tmp_path)
    encoder = mocker.patch.object(cli, "Encoder")

    assert cli.main(["ft", "-t", "x"]) == 1
    encoder.assert_not_called()
    assert not (tmp_path / "all_files_text.txt").exists()


@pytest.mark.unit
def test_main_unknown_option_exits_non_zero() -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["ft", "--bogus"])

    assert exc_info.value.code != 0


@pytest.mark.unit
def test_main_without_arguments_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main([]) == 0
    assert "convft" in capsys.readouterr().out


@pytest.mark.unit
def test_main_decode_without_artifact_fails(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert cli.main(["tf"]) == 1


@pytest.mark.unit
def test_main_decode_ignores_extra_arguments(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "all_files_text.txt").write_text("Filepath: x.txt\nContent:\nx\n\n", encoding="utf-8")

    assert cli.main(["tf", "whatever"]) == 0
    assert (tmp_path / "x.txt").read_text(encoding="utf-8") == "x"


@pytest.mark.unit
def test_main_encode_unwritable_artifact_fails(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    mocker: MockerFixture,
) -> None:
    monkeypatch.chdir(tmp_path)
    mocker.patch.object(capabilities.shutil, "which", return_value=None)
    (tmp_path / "all_files_text.txt").mkdir()
    (tmp_path / "a.txt").write_text("a\n", encoding="utf-8")
    error = mocker.patch.object(cli.logger, "error")

    assert cli.main(["ft"]) == 1
    assert error.call_args.args == ("artifact_unwritable",)
    assert error.call_args.kwargs["path"] == str(tmp_path.resolve() / "all_files_text.txt")
