from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from convft.capabilities import ContentTypeDetector, FileCommandDetector
from convft.config import BINARY_EXTENSIONS, is_text_mime

if TYPE_CHECKING:
    from pathlib import Path


class Classification(BaseModel):
    """Outcome of classifying one file.

    Attributes:
        accepted: Whether the content can be embedded as text.
        reason: Short machine-friendly reason ("binary-extension", "mime", ...).
        mime_type: MIME type reported by the detector, empty when not queried.
    """

    model_config = ConfigDict(frozen=True)

    accepted: bool
    reason: str
    mime_type: str = Field(default="")


def has_binary_extension(path: Path) -> bool:
    """Check `path` against the fixed list of known-binary extensions."""
    return path.suffix.lower().lstrip(".") in BINARY_EXTENSIONS


class ContentClassifier:
    """Decide whether a file is text-safe to embed in the artifact.

    The extension check runs first; only files that pass it are handed to
    the content-type detector.
    """

    def __init__(self, detector: ContentTypeDetector | None = None) -> None:
        self.detector: ContentTypeDetector = detector or FileCommandDetector()

    def classify(self, path: Path) -> Classification:
        if has_binary_extension(path):
            return Classification(accepted=False, reason="binary-extension")
        mime = self.detector.mime_type(path)
        if is_text_mime(mime):
            return Classification(accepted=True, reason="mime", mime_type=mime)
        return Classification(accepted=False, reason="non-text", mime_type=mime)

    def is_text_safe(self, path: Path) -> bool:
        return self.classify(path).accepted
