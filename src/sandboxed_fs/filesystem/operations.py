"""
Sandboxed file and directory operations.

Thin wrappers around filesystem calls. Every path goes through the
resolver immediately before it is used.
"""

import fnmatch
import logging
import os
import stat
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional, Sequence, Union

from pydantic import BaseModel, Field

from sandboxed_fs.filesystem.config import FileSystemAccessConfig
from sandboxed_fs.filesystem.exceptions import (
    AccessDeniedError,
    FileSizeLimitExceededError,
    FileSystemError,
)
from sandboxed_fs.filesystem.resolver import PathResolver

logger = logging.getLogger(__name__)

PathArg = Union[str, os.PathLike]


def glob_match(parts: Sequence[str], pattern_parts: Sequence[str]) -> bool:
    """
    Match path segments against glob segments.

    ``*`` and ``?`` stay within one segment; a ``**`` segment matches zero or
    more whole segments. Dotfiles are not special.
    """
    if not pattern_parts:
        return not parts
    head, rest = pattern_parts[0], pattern_parts[1:]
    if head == "**":
        return any(glob_match(parts[i:], rest) for i in range(len(parts) + 1))
    return (
        bool(parts)
        and fnmatch.fnmatchcase(parts[0], head)
        and glob_match(parts[1:], rest)
    )


class FileReadResult(BaseModel):
    """Outcome of reading one file in a batch."""

    path: str = Field(description="Path as requested")
    content: Optional[str] = Field(default=None, description="File content on success")
    error: Optional[str] = Field(default=None, description="Error message on failure")

    @property
    def ok(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        if self.ok:
            return f"{self.path}:\n{self.content}\n"
        return f"{self.path}: Error - {self.error}"


class DirectoryEntry(BaseModel):
    """A single entry of a directory listing."""

    name: str
    is_directory: bool

    def __str__(self) -> str:
        return f"{'[DIR]' if self.is_directory else '[FILE]'} {self.name}"


class TreeEntry(BaseModel):
    """A node of a recursive directory tree. Directories always have children."""

    name: str
    type: Literal["file", "directory"]
    children: Optional[list["TreeEntry"]] = None


class FileInfo(BaseModel):
    """Metadata about a file or directory."""

    size: int
    created: datetime
    modified: datetime
    accessed: datetime
    is_directory: bool
    is_file: bool
    permissions: str = Field(description="Last three octal digits of the mode")

    @classmethod
    def from_stat(cls, stats: os.stat_result) -> "FileInfo":
        created = getattr(stats, "st_birthtime", stats.st_ctime)
        return cls(
            size=stats.st_size,
            created=datetime.fromtimestamp(created),
            modified=datetime.fromtimestamp(stats.st_mtime),
            accessed=datetime.fromtimestamp(stats.st_atime),
            is_directory=stat.S_ISDIR(stats.st_mode),
            is_file=stat.S_ISREG(stats.st_mode),
            permissions=oct(stats.st_mode)[-3:],
        )

    def __str__(self) -> str:
        return "\n".join(f"{key}: {value}" for key, value in self.model_dump().items())


class FileOperations:
    """
    File and directory operations restricted to the allowed roots.

    Usage:
        config = FileSystemAccessConfig(allowed_directories=["/srv/workspace"])
        ops = FileOperations(config)

        ops.write_file("/srv/workspace/notes.txt", "hello")
        for entry in ops.list_directory("/srv/workspace"):
            print(entry)
    """

    def __init__(
        self,
        config: FileSystemAccessConfig,
        resolver: Optional[PathResolver] = None,
    ):
        """
        Initialize file operations.

        Args:
            config: Filesystem access configuration
            resolver: Resolver to use (built from the config if omitted)
        """
        self.config = config
        self.resolver = resolver or PathResolver(config.allowed_roots())

    def read_file(self, path: PathArg, encoding: str = "utf-8") -> str:
        """
        Read a text file.

        Raises:
            AccessDeniedError: If the path is outside the allowed roots
            PathNotFoundError: If neither the path nor its parent exists
            FileSizeLimitExceededError: If the file is too large
            OSError: If the file cannot be read
        """
        resolved = self.resolver.resolve(path)

        file_size = resolved.path.stat().st_size
        if file_size > self.config.max_file_size_bytes:
            logger.warning(
                f"File too large: {resolved.path} ({file_size} bytes > "
                f"{self.config.max_file_size_bytes} bytes)"
            )
            raise FileSizeLimitExceededError(
                str(resolved.path), file_size, self.config.max_file_size_bytes
            )

        content = resolved.path.read_text(encoding=encoding)
        logger.debug(f"Read file: {resolved.path} ({file_size} bytes)")
        return content

    def read_file_result(self, path: PathArg, encoding: str = "utf-8") -> FileReadResult:
        """Read one file, capturing any failure in the result instead of raising."""
        try:
            content = self.read_file(path, encoding=encoding)
        except (FileSystemError, OSError, ValueError) as e:
            logger.warning(f"Skipping file {path}: {e}")
            return FileReadResult(path=os.fspath(path), error=str(e))
        return FileReadResult(path=os.fspath(path), content=content)

    def read_multiple_files(
        self, paths: Sequence[PathArg], encoding: str = "utf-8"
    ) -> list[FileReadResult]:
        """Read several files; one failing file does not affect the others."""
        return [self.read_file_result(path, encoding=encoding) for path in paths]

    def write_file(self, path: PathArg, content: str, encoding: str = "utf-8") -> Path:
        """
        Create or overwrite a file.

        Returns:
            The resolved path that was written
        """
        self._require_write(path)
        resolved = self.resolver.resolve(path)
        resolved.path.write_text(content, encoding=encoding)
        logger.info(f"Wrote file: {resolved.path} ({len(content)} chars)")
        return resolved.path

    def create_directory(self, path: PathArg) -> Path:
        """Create a directory (and missing parents). Succeeds if it already exists."""
        self._require_write(path)
        resolved = self.resolver.resolve(path)
        resolved.path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Created directory: {resolved.path}")
        return resolved.path

    def list_directory(self, path: PathArg) -> list[DirectoryEntry]:
        """List the immediate entries of a directory, sorted by name."""
        resolved = self.resolver.resolve(path)
        entries = [
            DirectoryEntry(name=entry.name, is_directory=entry.is_dir(follow_symlinks=False))
            for entry in self._scan(resolved.path)
        ]
        logger.debug(f"Listed {len(entries)} entries in {resolved.path}")
        return entries

    @staticmethod
    def format_listing(entries: Sequence[DirectoryEntry]) -> str:
        return "\n".join(str(entry) for entry in entries)

    def directory_tree(self, path: PathArg) -> list[TreeEntry]:
        """Build a recursive tree; each level is validated before it is read."""
        resolved = self.resolver.resolve(path)
        tree = []
        for entry in self._scan(resolved.path):
            if entry.is_dir(follow_symlinks=False):
                children = self.directory_tree(resolved.path / entry.name)
                tree.append(TreeEntry(name=entry.name, type="directory", children=children))
            else:
                tree.append(TreeEntry(name=entry.name, type="file"))
        return tree

    def move_file(self, source: PathArg, destination: PathArg) -> Path:
        """
        Move or rename a file or directory.

        Raises:
            FileExistsError: If the destination already exists
        """
        self._require_write(destination)
        resolved_source = self.resolver.resolve(source)
        resolved_destination = self.resolver.resolve(destination)

        if resolved_destination.exists:
            raise FileExistsError(f"Destination already exists: {resolved_destination.path}")

        os.rename(resolved_source.path, resolved_destination.path)
        logger.info(f"Moved {resolved_source.path} -> {resolved_destination.path}")
        return resolved_destination.path

    def get_file_info(self, path: PathArg) -> FileInfo:
        """Return size, timestamps, type and permission bits of a path."""
        resolved = self.resolver.resolve(path)
        return FileInfo.from_stat(resolved.path.stat())

    def search_files(
        self,
        root: PathArg,
        pattern: str,
        exclude_patterns: Optional[Sequence[str]] = None,
    ) -> list[Path]:
        """
        Recursively find entries whose name contains ``pattern`` (case-insensitive).

        Entries that fail validation are skipped, and unreadable subtrees are
        skipped without aborting the search.

        Args:
            root: Directory to search from
            pattern: Substring to look for in entry names
            exclude_patterns: Names to prune (any path component) or globs
                matched against the root-relative path

        Returns:
            Matching paths, at most ``max_search_results``
        """
        resolved_root = self.resolver.resolve(root)
        excludes = list(exclude_patterns or [])
        needle = pattern.lower()
        limit = self.config.max_search_results
        results: list[Path] = []

        def walk(directory: Path) -> None:
            for entry in self._scan(directory):
                if len(results) >= limit:
                    return
                full_path = directory / entry.name
                try:
                    self.resolver.resolve(full_path)
                except (FileSystemError, OSError):
                    continue

                relative = full_path.relative_to(resolved_root.path).as_posix()
                if self._is_excluded(relative, excludes):
                    continue

                if needle in entry.name.lower():
                    results.append(full_path)

                if entry.is_dir(follow_symlinks=False):
                    try:
                        walk(full_path)
                    except OSError as e:
                        logger.debug(f"Skipping subtree {full_path}: {e}")

        walk(resolved_root.path)
        if len(results) >= limit:
            logger.warning(f"Reached max results ({limit})")
        logger.info(f"search_files found {len(results)} matches under {resolved_root.path}")
        return results

    def list_allowed_directories(self) -> list[Path]:
        return list(self.resolver.roots.directories)

    @staticmethod
    def _scan(directory: Path) -> list[os.DirEntry]:
        with os.scandir(directory) as it:
            return sorted(it, key=lambda entry: entry.name)

    @staticmethod
    def _is_excluded(relative_path: str, patterns: Sequence[str]) -> bool:
        parts = relative_path.split("/")
        for pattern in patterns:
            if "*" in pattern:
                if glob_match(parts, pattern.split("/")):
                    return True
            elif pattern in parts:
                return True
        return False

    def _require_write(self, path: PathArg) -> None:
        if not self.config.allow_write:
            raise AccessDeniedError(os.fspath(path), "Write operations are disabled")
