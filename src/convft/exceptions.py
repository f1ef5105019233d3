from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ConvftError(Exception):
    """Base exception for errors in the convft package."""


@dataclass(frozen=True)
class UserInputError(ConvftError):
    """Raised when command line or settings values are invalid."""

    message: str


@dataclass(frozen=True)
class PathResolutionError(ConvftError):
    """Raised when a user-supplied path cannot be canonicalized."""

    path: str
    reason: str


@dataclass(frozen=True)
class ArtifactMissingError(ConvftError):
    """Raised when decoding is requested but the artifact does not exist."""

    path: Path
    message: str = "The artifact file was not found in the working directory."


@dataclass(frozen=True)
class RecordError(ConvftError):
    """Raised when a single artifact record cannot be materialized."""

    line_number: int
    path: str
    reason: str


@dataclass(frozen=True)
class GitCommandError(ConvftError):
    """Raised when a git command fails."""

    command: str
    returncode: int
    stdout: str
    stderr: str
