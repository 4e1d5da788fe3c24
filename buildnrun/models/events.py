"""Filesystem event models delivered by the event source."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, model_validator


class EventKind(str, Enum):
    """Kinds of debounced filesystem notifications."""

    CREATE = "create"
    WRITE = "write"
    RENAME = "rename"
    REMOVE = "remove"
    RESCAN = "rescan"
    OTHER = "other"


# Kinds that carry exactly one path in ``path``.
_SINGLE_PATH_KINDS = {EventKind.CREATE, EventKind.WRITE, EventKind.REMOVE}


class FsEvent(BaseModel):
    """A single debounced filesystem event.

    ``path`` is the affected path (the *old* path for renames) and
    ``new_path`` is only set for renames.  ``RESCAN`` carries no path;
    ``OTHER`` may or may not.
    """

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    path: Path | None = None
    new_path: Path | None = None
    is_directory: bool = False

    @model_validator(mode="after")
    def _check_paths(self) -> FsEvent:
        if self.kind in _SINGLE_PATH_KINDS and self.path is None:
            raise ValueError(f"{self.kind.value} event requires a path")
        if self.kind == EventKind.RENAME and (self.path is None or self.new_path is None):
            raise ValueError("rename event requires both path and new_path")
        if self.kind == EventKind.RESCAN and (self.path or self.new_path):
            raise ValueError("rescan event carries no path")
        return self

    @property
    def subject_path(self) -> Path | None:
        """The path that decides whether this event matters (new path for renames)."""
        if self.kind == EventKind.RENAME:
            return self.new_path
        return self.path

    # Convenience constructors ------------------------------------------

    @classmethod
    def create(cls, path: Path | str, *, is_directory: bool = False) -> FsEvent:
        return cls(kind=EventKind.CREATE, path=Path(path), is_directory=is_directory)

    @classmethod
    def write(cls, path: Path | str, *, is_directory: bool = False) -> FsEvent:
        return cls(kind=EventKind.WRITE, path=Path(path), is_directory=is_directory)

    @classmethod
    def remove(cls, path: Path | str, *, is_directory: bool = False) -> FsEvent:
        return cls(kind=EventKind.REMOVE, path=Path(path), is_directory=is_directory)

    @classmethod
    def rename(
        cls, old: Path | str, new: Path | str, *, is_directory: bool = False
    ) -> FsEvent:
        return cls(
            kind=EventKind.RENAME,
            path=Path(old),
            new_path=Path(new),
            is_directory=is_directory,
        )

    @classmethod
    def rescan(cls) -> FsEvent:
        return cls(kind=EventKind.RESCAN)

    @classmethod
    def other(cls, path: Path | str | None = None) -> FsEvent:
        return cls(kind=EventKind.OTHER, path=Path(path) if path is not None else None)
