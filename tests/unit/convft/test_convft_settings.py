from __future__ import annotations

from pathlib import Path

import pytest

from convft.exceptions import UserInputError
from convft.settings import Settings, build_settings, environment_defaults


@pytest.mark.unit
def test_settings_defaults() -> None:
    settings = Settings()

    assert settings.workdir.resolve() == Path.cwd().resolve()
    assert settings.artifact == "all_files_text.txt"
    assert settings.tree_depth == 1
    assert settings.include == []
    assert settings.artifact_path == settings.workdir / "all_files_text.txt"


@pytest.mark.unit
def test_build_settings_rejects_negative_depth() -> None:
    with pytest.raises(UserInputError) as exc_info:
        build_settings(tree_depth=-1)

    assert "tree_depth" in exc_info.value.message


@pytest.mark.unit
def test_build_settings_drops_none_values() -> None:
    settings = build_settings(tree_depth=None, log_file=None)

    assert settings.tree_depth == 1
    assert not settings.log_file


@pytest.mark.unit
def test_environment_defaults_prefers_process_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text("CONVFT_TREE_DEPTH=4\nCONVFT_LOG_FILE=from-dotenv.log\nOTHER=1\n", encoding="utf-8")
    monkeypatch.setenv("CONVFT_LOG_FILE", "from-env.log")
    monkeypatch.delenv("CONVFT_TREE_DEPTH", raising=False)

    values = environment_defaults(tmp_path)

    assert values["tree_depth"] == "4"
    assert values["log_file"] == "from-env.log"
    assert "other" not in values
