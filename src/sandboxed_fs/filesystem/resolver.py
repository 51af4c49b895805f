"""
Sandboxed path resolution.

Converts caller-supplied path strings (relative, ``~``-prefixed, symlinked or
not yet existing) into canonical absolute paths that are guaranteed to lie
inside the allowed roots. The allow-list check runs twice: once on the
nominal path before the filesystem is touched, and once on the real path
after symlinks are followed.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

from sandboxed_fs.filesystem.config import AllowedRoots
from sandboxed_fs.filesystem.exceptions import (
    AccessDeniedError,
    InvalidPathError,
    PathNotFoundError,
)

logger = logging.getLogger(__name__)

SYMLINK_ESCAPE_REASON = "Access denied - symlink target outside allowed directories"


class PathStatus(str, Enum):
    """Existence classification of a resolved path."""

    EXISTS = "exists"
    MISSING = "missing"  # path is absent but its parent directory exists


@dataclass(frozen=True)
class ResolvedPath:
    """A validated path, guaranteed to be inside the allowed roots."""

    requested: str
    path: Path
    status: PathStatus

    @property
    def exists(self) -> bool:
        return self.status is PathStatus.EXISTS

    def __fspath__(self) -> str:
        return str(self.path)

    def __str__(self) -> str:
        return str(self.path)


def expand_home(path: str) -> str:
    """Replace a leading ``~`` or ``~/`` with the user's home directory."""
    if path == "~":
        return os.path.expanduser("~")
    if path.startswith("~/"):
        return os.path.join(os.path.expanduser("~"), path[2:])
    return path


class PathResolver:
    """
    Validate and resolve paths against an immutable set of allowed roots.

    Nothing is cached: every call re-reads the filesystem, since symlink
    targets may change between calls.

    Usage:
        resolver = PathResolver(AllowedRoots(directories=["/srv/workspace"]))

        resolved = resolver.resolve("/srv/workspace/notes.txt")
        if resolved.exists:
            print(resolved.path.read_text())
    """

    def __init__(self, roots: AllowedRoots):
        """
        Initialize the resolver.

        Args:
            roots: Canonical allowed root directories
        """
        self.roots = roots

    def resolve(self, requested_path: Union[str, os.PathLike]) -> ResolvedPath:
        """
        Resolve a requested path inside the sandbox.

        Args:
            requested_path: Path as supplied by the caller

        Returns:
            ResolvedPath with the real path (existing targets) or the
            normalized absolute path (targets whose parent exists)

        Raises:
            InvalidPathError: If the path is empty or contains a NUL byte
            AccessDeniedError: If the path or its real target is outside the roots
            PathNotFoundError: If neither the path nor its parent exists
            OSError: Other resolution failures, unchanged
        """
        requested = os.fspath(requested_path)
        if not requested or "\x00" in requested:
            raise InvalidPathError(repr(requested), "Invalid path")

        absolute = os.path.abspath(expand_home(requested))
        # POSIX keeps exactly two leading slashes; Linux treats them as one
        if os.name == "posix" and absolute.startswith("//"):
            absolute = absolute[1:]

        if not self.roots.contains(absolute):
            logger.warning(f"Access denied to {absolute}: outside allowed directories")
            raise AccessDeniedError(absolute)

        try:
            real = os.path.realpath(absolute, strict=True)
        except FileNotFoundError as error:
            return self._resolve_missing(requested, absolute, error)

        if not self.roots.contains(real):
            logger.warning(f"Access denied to {absolute}: symlink target {real} escapes")
            raise AccessDeniedError(absolute, SYMLINK_ESCAPE_REASON)

        logger.debug(f"Resolved {requested!r} -> {real}")
        return ResolvedPath(requested=requested, path=Path(real), status=PathStatus.EXISTS)

    def _resolve_missing(
        self, requested: str, absolute: str, error: FileNotFoundError
    ) -> ResolvedPath:
        """Validate a path that does not exist yet through its parent directory."""
        # A dangling symlink would be followed by a later write
        if os.path.islink(absolute):
            target = os.path.realpath(absolute)
            if not self.roots.contains(target):
                logger.warning(f"Access denied to {absolute}: dangling symlink to {target}")
                raise AccessDeniedError(absolute, SYMLINK_ESCAPE_REASON)

        parent = os.path.dirname(absolute)
        try:
            real_parent = os.path.realpath(parent, strict=True)
        except FileNotFoundError:
            raise PathNotFoundError(absolute) from error

        if not self.roots.contains(real_parent):
            logger.warning(f"Access denied to {absolute}: parent resolves to {real_parent}")
            raise AccessDeniedError(absolute, SYMLINK_ESCAPE_REASON)

        logger.debug(f"Resolved {requested!r} -> {absolute} (does not exist yet)")
        return ResolvedPath(requested=requested, path=Path(absolute), status=PathStatus.MISSING)
