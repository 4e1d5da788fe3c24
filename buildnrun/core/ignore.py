"""Project ignore rules: gitignore-style matching over event paths.

Rules are gathered once at startup from the project root: the user's
global git excludes, the enclosing repository's ``.git/info/exclude``,
every ``.gitignore`` from the repository root down to the project root,
and any extra patterns supplied by the caller.  Each ruleset is evaluated
relative to the directory that declared it, later rulesets taking
precedence over earlier ones, the same way git resolves them.  As in git,
a path inside an excluded directory stays excluded whatever negations
follow.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from enum import Enum
from pathlib import Path

import pathspec

logger = logging.getLogger(__name__)


class MatchResult(str, Enum):
    """Outcome of matching a path against the ignore rules."""

    IGNORED = "ignored"
    NOT_IGNORED = "not_ignored"
    WHITELISTED = "whitelisted"

    @property
    def is_ignore(self) -> bool:
        return self is MatchResult.IGNORED


class _RuleSet:
    """One gitignore file (or pattern list) anchored at a base directory."""

    def __init__(self, base: Path, lines: Iterable[str], source: str) -> None:
        self.base = base
        self.source = source
        self.patterns = pathspec.GitIgnoreSpec.from_lines(lines)

    def check(self, path: Path, is_dir: bool) -> bool | None:
        """Return True (ignored), False (re-included) or None (no rule applies)."""
        try:
            rel = path.relative_to(self.base)
        except ValueError:
            return None
        rel_str = rel.as_posix()
        if rel_str in ("", "."):
            return None
        if is_dir:
            rel_str += "/"
        return self.patterns.check_file(rel_str).include


def _find_repo_root(start: Path) -> Path | None:
    for candidate in (start, *start.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def _global_excludes_file() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "git" / "ignore"


def _read_lines(path: Path) -> list[str] | None:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except FileNotFoundError:
        return None
    except OSError as exc:
        logger.warning("Cannot read ignore file %s: %s", path, exc)
        return None


class IgnoreMatcher:
    """Read-only matcher answering "is this path ignored by the project?".

    Build it with :meth:`from_root`; it is safe to share between threads
    once constructed.
    """

    def __init__(self, rulesets: list[_RuleSet] | None = None) -> None:
        self._rulesets = list(rulesets or [])

    @classmethod
    def from_root(
        cls,
        root: Path | str = ".",
        *,
        extra_patterns: Iterable[str] = (),
        include_global: bool = True,
    ) -> IgnoreMatcher:
        """Collect the ignore rules that apply to the project at *root*."""
        root = Path(root).resolve()
        rulesets: list[_RuleSet] = []

        def add_file(base: Path, path: Path) -> None:
            lines = _read_lines(path)
            if lines is not None:
                logger.debug("Loaded ignore rules from %s", path)
                rulesets.append(_RuleSet(base, lines, str(path)))

        repo_root = _find_repo_root(root)
        if include_global:
            # Global excludes apply relative to whichever repository uses them.
            add_file(repo_root or root, _global_excludes_file())

        if repo_root is not None:
            add_file(repo_root, repo_root / ".git" / "info" / "exclude")
            chain = [root, *root.parents]
            chain = chain[: chain.index(repo_root) + 1]
            for directory in reversed(chain):
                add_file(directory, directory / ".gitignore")
        else:
            add_file(root, root / ".gitignore")

        extra = [p for p in extra_patterns if p]
        if extra:
            rulesets.append(_RuleSet(root, extra, "<built-in>"))

        return cls(rulesets)

    @property
    def sources(self) -> list[str]:
        """Where the loaded rules came from, lowest precedence first."""
        return [rs.source for rs in self._rulesets]

    def _decide(self, path: Path, is_dir: bool) -> bool | None:
        decision: bool | None = None
        for ruleset in self._rulesets:
            result = ruleset.check(path, is_dir)
            if result is not None:
                decision = result
        return decision

    def matches(self, path: Path | str, is_dir: bool = False) -> MatchResult:
        """Classify *path* against the loaded rules."""
        path = Path(path)
        if not path.is_absolute():
            path = Path.cwd() / path
        path = Path(os.path.normpath(path))

        # Nothing below an excluded directory can be re-included.
        for parent in reversed(path.parents):
            if self._decide(parent, True):
                return MatchResult.IGNORED

        decision = self._decide(path, is_dir)
        if decision is None:
            return MatchResult.NOT_IGNORED
        return MatchResult.IGNORED if decision else MatchResult.WHITELISTED

    def is_ignored(self, path: Path | str, is_dir: bool = False) -> bool:
        return self.matches(path, is_dir).is_ignore
