from __future__ import annotations

import re
from typing import Final

from pydantic import BaseModel, ConfigDict, Field

ARTIFACT_NAME: Final = "all_files_text.txt"

FILEPATH_MARKER: Final = "Filepath: "
CONTENT_MARKER: Final = "Content:"
TREE_END_MARKER: Final = "EndDirectoryTree"
TREE_START_PATTERN: Final = re.compile(r"^DirectoryTree(?: \(.*\))?:$")
RECORD_TRAILER: Final = b"\n\n"

TREE_IGNORE: Final = ".git|.DS_Store|*.pyc|__pycache__|node_modules|.venv|env"
TREE_MISSING_NOTICE: Final = "tree command not found, skipping directory tree."

DEFAULT_EXCLUDE_NAMES: Final = (
    ".git",
    "venv",
    ".venv",
    "env",
    "__pycache__",
    "node_modules",
    "dist",
    "build",
    ".eggs",
    ".tox",
    "wheels",
    ".cache",
    "logs",
    ".idea",
    ".vscode",
)

BINARY_EXTENSIONS: Final = frozenset(
    {
        "png", "jpg", "jpeg", "gif", "bmp", "ico", "pdf", "zip", "gz", "tar",
        "rar", "7z", "bin", "exe", "dll", "so", "dylib", "class", "pyc", "o",
        "a", "lib", "obj", "iso", "dmg", "svg", "psd", "ttf", "woff", "woff2",
        "eot", "jar", "war", "ear", "docx", "xlsx", "pptx", "odt", "ods", "odp",
        "db", "sqlite", "mdb", "mp3", "mp4", "avi", "mov", "mkv", "flv", "webm",
    },
)  # fmt: skip

TEXT_MIME_PATTERN: Final = re.compile(
    r"^text/|application/json|application/xml|application/javascript|application/x-sh|inode/x-empty",
)

GLOB_CHARS: Final = frozenset("*?[")


class ExclusionDefaults(BaseModel):
    """Immutable default exclusion configuration, composed per run with user excludes.

    Attributes:
        names: Path components that are always skipped wherever they appear.
        artifact_name: File name of the artifact, excluded at any depth.
    """

    model_config = ConfigDict(frozen=True)

    names: tuple[str, ...] = Field(default=DEFAULT_EXCLUDE_NAMES, description="Ignored path components.")
    artifact_name: str = Field(default=ARTIFACT_NAME, description="Artifact file name.")

    def component_names(self) -> tuple[str, ...]:
        """Return every component name to exclude, the artifact name included."""
        if self.artifact_name in self.names:
            return self.names
        return (*self.names, self.artifact_name)


def is_text_mime(mime_type: str) -> bool:
    """Check whether a MIME type is one of the text-like types accepted for embedding.

    Args:
        mime_type (str): the MIME type reported by a content-type detector

    Returns:
        bool: True if the content can be embedded as text, False otherwise
    """
    return bool(TEXT_MIME_PATTERN.search(mime_type))
