"""Binary name discovery from the project manifest (``Cargo.toml``)."""

from __future__ import annotations

import tomllib
from pathlib import Path

DEFAULT_MANIFEST = Path("Cargo.toml")


class ConfigurationError(ValueError):
    """Raised when the watcher cannot be configured from the given inputs."""


def resolve_binary_name(manifest_path: Path | None = None) -> str:
    """Name of the binary to build when none was given explicitly.

    A manifest declaring exactly one ``[[bin]]`` target uses that target's
    name; otherwise the package name is the default binary name.
    """
    path = manifest_path or DEFAULT_MANIFEST
    try:
        with path.open("rb") as fh:
            manifest = tomllib.load(fh)
    except FileNotFoundError as exc:
        raise ConfigurationError(
            f"No --bin given and no manifest found at {path}"
        ) from exc
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(f"Cannot read manifest {path}: {exc}") from exc

    bins = manifest.get("bin")
    if isinstance(bins, list) and len(bins) == 1 and isinstance(bins[0], dict):
        name = bins[0].get("name")
        if isinstance(name, str) and name:
            return name

    package = manifest.get("package")
    if isinstance(package, dict):
        name = package.get("name")
        if isinstance(name, str) and name:
            return name

    raise ConfigurationError(
        f"Cannot determine the binary to run from {path}; pass --bin"
    )
