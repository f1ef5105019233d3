from __future__ import annotations

import os
from pathlib import Path

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from convft.config import ARTIFACT_NAME
from convft.exceptions import UserInputError

ENV_PREFIX = "CONVFT_"


class Settings(BaseModel):
    """Configuration settings for a convft run."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    workdir: Path = Field(default_factory=Path.cwd, description="Working directory.")
    artifact: str = Field(default=ARTIFACT_NAME, description="Artifact file name.")
    include: list[str] = Field(default_factory=list, description="Explicit include roots.")
    exclude: list[str] = Field(default_factory=list, description="Exclusion patterns.")
    tree_depth: int = Field(default=1, ge=0, description="Directory tree header depth.")
    log_file: str = Field(default="", description="Log file path.")

    @property
    def artifact_path(self) -> Path:
        """Absolute path of the artifact inside the working directory."""
        return self.workdir / self.artifact


def environment_defaults(workdir: Path | None = None) -> dict[str, str]:
    """Collect ``CONVFT_*`` values from a ``.env`` file and the process environment.

    The process environment wins over the ``.env`` file. Keys are returned
    lower-cased without the prefix (``CONVFT_TREE_DEPTH`` -> ``tree_depth``).

    Args:
        workdir (Path | None): directory to start the ``.env`` search from;
            defaults to the current directory.

    Returns:
        dict[str, str]: the collected values
    """
    if workdir is None:
        env_file = find_dotenv(usecwd=True)
    else:
        candidate = workdir / ".env"
        env_file = str(candidate) if candidate.is_file() else ""
    merged: dict[str, str | None] = dict(dotenv_values(env_file)) if env_file else {}
    merged.update(os.environ)
    out: dict[str, str] = {}
    for key, value in merged.items():
        if key.startswith(ENV_PREFIX) and value is not None:
            out[key.removeprefix(ENV_PREFIX).lower()] = value
    return out


def build_settings(**values: object) -> Settings:
    """Build a `Settings` instance, turning validation failures into `UserInputError`.

    Args:
        **values: field values; `None` values are dropped so defaults apply.

    Raises:
        UserInputError: if a value does not validate (e.g. a negative tree depth).

    Returns:
        Settings: the validated settings
    """
    cleaned = {k: v for k, v in values.items() if v is not None}
    try:
        return Settings(**cleaned)
    except ValidationError as e:
        errors = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise UserInputError(message=f"Invalid settings: {errors}") from e
