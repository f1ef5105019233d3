from __future__ import annotations

import fnmatch
import re
from enum import StrEnum, auto
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from convft.config import GLOB_CHARS, ExclusionDefaults
from convft.exceptions import PathResolutionError
from convft.logging import logger
from convft.paths import CandidatePath

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from convft.capabilities import VersionControl
    from convft.paths import PathResolver

VCS_IGNORE = "vcs-ignore"
IGNORE_FILE = ".gitignore"


class RuleKind(StrEnum):
    """How an exclusion rule is matched against a candidate path."""

    LITERAL = auto()
    PREFIX = auto()
    SUBSTRING = auto()
    COMPONENT = auto()
    GLOB = auto()


FAST_KINDS = frozenset({RuleKind.LITERAL, RuleKind.PREFIX})


class ExclusionRule(BaseModel):
    """A single exclusion rule.

    Attributes:
        kind: Matching strategy.
        value: Absolute path for literal/prefix rules, free text otherwise.
        source: Where the rule came from ("default", "user" or "artifact").
    """

    model_config = ConfigDict(frozen=True)

    kind: RuleKind
    value: str
    source: str = Field(default="user")

    def matches(self, canonical: Path, display: str) -> bool:
        """Check the rule against a canonical path and its display form.

        Args:
            canonical (Path): absolute canonical path of the candidate
            display (str): the candidate relative to the working directory

        Returns:
            bool: True if the candidate is excluded by this rule
        """
        match self.kind:
            case RuleKind.LITERAL:
                return str(canonical) == self.value
            case RuleKind.PREFIX:
                return str(canonical).startswith(self.value.rstrip("/") + "/")
            case RuleKind.SUBSTRING:
                return self.value in display
            case RuleKind.COMPONENT:
                return self.value in _display_parts(display)
            case RuleKind.GLOB:
                return fnmatch.fnmatch(display, self.value) or fnmatch.fnmatch(canonical.name, self.value)
        return False

    def __str__(self) -> str:
        return f"{self.kind}:{self.value}"


def _display_parts(display: str) -> tuple[str, ...]:
    parts = PurePosixPath(display).parts
    return tuple(p for p in parts if p not in {"..", "/"})


class ExclusionSet(BaseModel):
    """Ordered, immutable collection of exclusion rules."""

    model_config = ConfigDict(frozen=True)

    rules: tuple[ExclusionRule, ...] = ()

    def __len__(self) -> int:
        return len(self.rules)

    def __contains__(self, rule: object) -> bool:
        return rule in self.rules

    def with_rules(self, rules: Iterable[ExclusionRule]) -> ExclusionSet:
        """Return a new set with `rules` appended, skipping duplicates."""
        merged = list(self.rules)
        for rule in rules:
            if rule not in merged:
                merged.append(rule)
        return ExclusionSet(rules=tuple(merged))

    @property
    def fast_rules(self) -> tuple[ExclusionRule, ...]:
        return tuple(r for r in self.rules if r.kind in FAST_KINDS)

    @property
    def pattern_rules(self) -> tuple[ExclusionRule, ...]:
        return tuple(r for r in self.rules if r.kind not in FAST_KINDS)


def default_rules(defaults: ExclusionDefaults) -> list[ExclusionRule]:
    """Expand the default configuration into component rules."""
    return [ExclusionRule(kind=RuleKind.COMPONENT, value=name, source="default") for name in defaults.component_names()]


def user_rules(pattern: str, resolver: PathResolver) -> list[ExclusionRule]:
    """Expand a user-supplied exclude value into one or more rules.

    - Values with glob characters become glob rules.
    - Existing directories become a literal rule plus a prefix rule.
    - Existing files become a literal rule.
    - Missing bare names become a literal rule plus a substring rule.
    - Unresolvable values are kept as substring rules.

    Args:
        pattern (str): the raw ``-e`` value
        resolver (PathResolver): resolver anchored at the working directory

    Returns:
        list[ExclusionRule]: the rules for this value (empty for blank input)
    """
    text = pattern.strip()
    if not text:
        return []
    if any(c in GLOB_CHARS for c in text):
        return [ExclusionRule(kind=RuleKind.GLOB, value=text.replace("\\", "/"))]
    try:
        candidate = resolver.resolve(text)
    except PathResolutionError as e:
        logger.warning("exclude_pattern_unresolvable", pattern=text, reason=e.reason)
        return [ExclusionRule(kind=RuleKind.SUBSTRING, value=text)]

    rules = [ExclusionRule(kind=RuleKind.LITERAL, value=str(candidate.canonical))]
    if candidate.is_dir:
        rules.append(ExclusionRule(kind=RuleKind.PREFIX, value=str(candidate.canonical)))
    elif not candidate.exists and "/" not in text and "\\" not in text:
        rules.append(ExclusionRule(kind=RuleKind.SUBSTRING, value=text))
    return rules


def scan_ignore_files(path: Path) -> bool:
    """Imprecise ignore check used when version control is unavailable.

    Walks up from the parent of `path` and looks in each ``.gitignore`` for a
    line naming the basename literally (optionally preceded by a ``/``).
    Wildcards and negations are not understood.

    Args:
        path (Path): canonical path to check

    Returns:
        bool: True if some ancestor ignore file names the basename
    """
    needle = re.compile(rf"(^|/){re.escape(path.name)}$")
    directory = path.parent
    while directory != directory.parent:
        ignore_file = directory / IGNORE_FILE
        if ignore_file.is_file():
            try:
                lines = ignore_file.read_text(encoding="utf-8", errors="ignore").splitlines()
            except OSError as e:
                logger.warning("ignore_file_unreadable", path=str(ignore_file), error=str(e))
                lines = []
            if any(needle.search(line.strip()) for line in lines):
                return True
        directory = directory.parent
    return False


class ExclusionEngine:
    """Decide whether a candidate path must be skipped.

    Evaluation order is literal/prefix rules, then substring/component/glob
    rules, then the version-control ignore check. The first match wins and
    nothing un-excludes a path.
    """

    def __init__(
        self,
        rules: ExclusionSet,
        resolver: PathResolver,
        vcs: VersionControl | None = None,
    ) -> None:
        self.rules = rules
        self.resolver = resolver
        self.vcs = vcs
        self._roots: dict[Path, Path | None] = {}

    @classmethod
    def build(
        cls,
        resolver: PathResolver,
        *,
        user_patterns: Sequence[str] = (),
        artifact_path: Path | None = None,
        defaults: ExclusionDefaults | None = None,
        vcs: VersionControl | None = None,
    ) -> ExclusionEngine:
        """Compose defaults, user patterns and the artifact path into a fresh engine.

        Args:
            resolver (PathResolver): resolver anchored at the working directory
            user_patterns (Sequence[str]): raw ``-e`` values
            artifact_path (Path | None): the artifact, always excluded when given
            defaults (ExclusionDefaults | None): default configuration
            vcs (VersionControl | None): version control used for ignore checks

        Returns:
            ExclusionEngine: the engine for one run
        """
        rules = ExclusionSet().with_rules(default_rules(defaults or ExclusionDefaults()))
        for pattern in user_patterns:
            rules = rules.with_rules(user_rules(pattern, resolver))
        if artifact_path is not None:
            artifact = resolver.canonicalize(artifact_path)
            rules = rules.with_rules([ExclusionRule(kind=RuleKind.LITERAL, value=str(artifact), source="artifact")])
        return cls(rules, resolver, vcs)

    def _canonical(self, path: CandidatePath | Path) -> Path:
        if isinstance(path, CandidatePath):
            return path.canonical
        return self.resolver.canonicalize(path)

    def _repo_root(self, directory: Path) -> Path | None:
        if self.vcs is None:
            return None
        if directory not in self._roots:
            self._roots[directory] = self.vcs.repo_root(directory)
        return self._roots[directory]

    def is_vcs_ignored(self, canonical: Path) -> bool:
        """Ask version control whether `canonical` is ignored, or scan ignore files as a fallback."""
        root = self._repo_root(canonical.parent)
        if root is not None and self.vcs is not None:
            return self.vcs.check_ignore(root, canonical)
        return scan_ignore_files(canonical)

    def explain(self, path: CandidatePath | Path) -> str | None:
        """Return the reason `path` is excluded, or None if it is kept.

        Args:
            path (CandidatePath | Path): the candidate

        Returns:
            str | None: the matching rule rendered as ``kind:value``,
                ``"vcs-ignore"`` for ignore-rule matches, or None
        """
        try:
            canonical = self._canonical(path)
        except PathResolutionError:
            return "unresolvable"
        display = self.resolver.display(canonical)
        for rule in self.rules.fast_rules:
            if rule.matches(canonical, display):
                return str(rule)
        for rule in self.rules.pattern_rules:
            if rule.matches(canonical, display):
                return str(rule)
        if self.is_vcs_ignored(canonical):
            return VCS_IGNORE
        return None

    def is_excluded(self, path: CandidatePath | Path) -> bool:
        return self.explain(path) is not None
