"""
Configuration for sandboxed filesystem access.
"""

import os
from pathlib import Path
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sandboxed_fs.filesystem.exceptions import InvalidPathError


def canonicalize(path: Union[str, Path]) -> Path:
    """Expand ``~``, resolve symlinks and normalize separators."""
    return Path(os.path.realpath(os.path.expanduser(str(path))))


class AllowedRoots(BaseModel):
    """
    Immutable, ordered set of canonical directories that bound all access.

    Membership is decided on path-segment boundaries, so ``/data-evil`` is
    not inside ``/data``.

    Usage:
        roots = AllowedRoots(directories=["/srv/workspace", "~/notes"])
        roots.contains("/srv/workspace/src/main.py")  # True
        roots.contains("/srv/workspace-old/main.py")  # False
    """

    model_config = ConfigDict(frozen=True)

    directories: tuple[Path, ...] = Field(
        default=(),
        description="Canonical absolute root directories",
    )

    @field_validator("directories", mode="before")
    @classmethod
    def canonicalize_directories(cls, v):
        """Canonicalize every root and drop duplicates, keeping order."""
        if not v:
            return ()
        seen: dict[Path, None] = {}
        for p in v:
            seen.setdefault(canonicalize(p), None)
        return tuple(seen)

    def contains(self, path: Union[str, Path]) -> bool:
        """
        Check whether a canonical absolute path lies within any root.

        Args:
            path: Absolute, normalized path to check

        Returns:
            True if the path equals a root or is a descendant of one
        """
        candidate = os.path.normpath(str(path))
        for root in self.directories:
            root_str = str(root)
            if candidate == root_str:
                return True
            prefix = root_str if root_str.endswith(os.sep) else root_str + os.sep
            if candidate.startswith(prefix):
                return True
        return False

    def __str__(self) -> str:
        return ", ".join(str(d) for d in self.directories)


class FileSystemAccessConfig(BaseModel):
    """
    Configuration for sandboxed filesystem access.

    Defines which directories may be touched, whether mutating operations
    are offered, and size/result limits.
    """

    allowed_directories: list[Path] = Field(
        default_factory=list,
        description="Allowed root directories (resolved to absolute paths)",
    )

    allow_write: bool = Field(
        default=True,
        description="Allow write operations (write, edit, mkdir, move)",
    )

    max_file_size_bytes: int = Field(
        default=10_000_000,  # 10 MB
        ge=0,
        description="Maximum file size that can be read (bytes)",
    )

    max_search_results: int = Field(
        default=1000,
        ge=1,
        le=100_000,
        description="Maximum number of search results to return",
    )

    @field_validator("allowed_directories", mode="before")
    @classmethod
    def resolve_directories(cls, v):
        """Resolve all directories to canonical absolute paths."""
        if not v:
            return []
        return [canonicalize(p) for p in v]

    def allowed_roots(self) -> AllowedRoots:
        """Build the immutable root set used by the path resolver."""
        return AllowedRoots(directories=self.allowed_directories)

    def validate_directories(self) -> None:
        """
        Check that every allowed directory exists and is a directory.

        Raises:
            InvalidPathError: If no directories are configured, or one is
                missing or not a directory
        """
        if not self.allowed_directories:
            raise InvalidPathError("", "No allowed directories configured")
        for directory in self.allowed_directories:
            if not directory.exists():
                raise InvalidPathError(str(directory), "Allowed directory does not exist")
            if not directory.is_dir():
                raise InvalidPathError(str(directory), "Allowed path is not a directory")

    def __repr__(self) -> str:
        return (
            f"FileSystemAccessConfig("
            f"allowed_dirs={len(self.allowed_directories)}, "
            f"allow_write={self.allow_write}, "
            f"max_size={self.max_file_size_bytes})"
        )
