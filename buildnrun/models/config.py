"""Watch configuration: what to watch, how to build, what to run.

Parsed once at startup by the CLI and never mutated afterwards.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TARGET_DIR = Path("target")

# Profiles whose artefacts cargo places under a directory not named after them.
_PROFILE_DIRS: dict[str, str] = {
    "dev": "debug",
    "test": "debug",
    "release": "release",
    "bench": "release",
}


class ColorMode(str, Enum):
    """Accepted values for the build driver's ``--color`` flag."""

    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


class WatchConfig(BaseModel):
    """Immutable watcher configuration.

    Field order matters: ``build_args`` emits flags in declaration order so
    that ``--help`` and the actual build invocation read the same way.
    """

    model_config = ConfigDict(frozen=True)

    watch_roots: list[Path] = Field(default_factory=list)
    quiet: bool = False
    binary_name: str
    package: str | None = None
    jobs: int | None = Field(default=None, ge=1)
    release_mode: bool = False
    profile: str | None = None
    features: list[str] = Field(default_factory=list)
    all_features: bool = False
    no_default_features: bool = False
    target_triple: str | None = None
    target_dir: Path | None = None
    manifest_path: Path | None = None
    message_format: str | None = None
    verbose: int = Field(default=0, ge=0)
    color: ColorMode | None = None
    frozen: bool = False
    locked: bool = False
    offline: bool = False
    run_args: list[str] = Field(default_factory=list)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def effective_watch_roots(self) -> list[Path]:
        """Return the roots to watch; the current directory when none were given."""
        return list(self.watch_roots) or [Path(".")]

    def effective_target_dir(self) -> Path:
        return self.target_dir if self.target_dir is not None else DEFAULT_TARGET_DIR

    def profile_dir(self) -> str:
        """Name of the output subdirectory the build driver writes into."""
        if self.profile:
            return _PROFILE_DIRS.get(self.profile, self.profile)
        return "release" if self.release_mode else "debug"

    def executable_path(self) -> Path:
        """Path of the executable produced by a successful build."""
        base = self.effective_target_dir()
        if self.target_triple:
            base = base / self.target_triple
        name = self.binary_name
        if os.name == "nt" and not name.endswith(".exe"):
            name += ".exe"
        return base / self.profile_dir() / name

    def build_args(self) -> list[str]:
        """Arguments passed to the build driver after the literal ``build``."""
        args: list[str] = []
        if self.quiet:
            args.append("--quiet")
        args += ["--bin", self.binary_name]
        if self.package:
            args += ["--package", self.package]
        if self.jobs is not None:
            args += ["--jobs", str(self.jobs)]
        if self.release_mode:
            args.append("--release")
        if self.profile:
            args += ["--profile", self.profile]
        for feature in self.features:
            args += ["--features", feature]
        if self.all_features:
            args.append("--all-features")
        if self.no_default_features:
            args.append("--no-default-features")
        if self.target_triple:
            args += ["--target", self.target_triple]
        if self.target_dir is not None:
            args += ["--target-dir", str(self.target_dir)]
        if self.manifest_path is not None:
            args += ["--manifest-path", str(self.manifest_path)]
        if self.message_format:
            args += ["--message-format", self.message_format]
        args += ["-v"] * self.verbose
        if self.color is not None:
            args += ["--color", self.color.value]
        if self.frozen:
            args.append("--frozen")
        if self.locked:
            args.append("--locked")
        if self.offline:
            args.append("--offline")
        return args
