"""
Sandboxed filesystem interface for LLM tool calling.

This module provides path resolution restricted to an allow-list of root
directories, tolerant diff-producing text patching, and the file
operations and tool adapter built on top of them.
"""

from sandboxed_fs.filesystem.config import AllowedRoots, FileSystemAccessConfig
from sandboxed_fs.filesystem.exceptions import (
    AccessDeniedError,
    EditNotApplicableError,
    FileSizeLimitExceededError,
    FileSystemError,
    InvalidPathError,
    PathNotFoundError,
)
from sandboxed_fs.filesystem.resolver import PathResolver, PathStatus, ResolvedPath
from sandboxed_fs.filesystem.editor import (
    EditInstruction,
    FileEditor,
    MatchStrategy,
    PatchResult,
    apply_edits_to_text,
    create_unified_diff,
    fence_diff,
    normalize_line_endings,
)
from sandboxed_fs.filesystem.operations import (
    DirectoryEntry,
    FileInfo,
    FileOperations,
    FileReadResult,
    TreeEntry,
)
from sandboxed_fs.filesystem.tools import LLMFileSystemTools

__all__ = [
    # Configuration
    "AllowedRoots",
    "FileSystemAccessConfig",
    # Exceptions
    "AccessDeniedError",
    "EditNotApplicableError",
    "FileSizeLimitExceededError",
    "FileSystemError",
    "InvalidPathError",
    "PathNotFoundError",
    # Path resolution
    "PathResolver",
    "PathStatus",
    "ResolvedPath",
    # Patching
    "EditInstruction",
    "FileEditor",
    "MatchStrategy",
    "PatchResult",
    "apply_edits_to_text",
    "create_unified_diff",
    "fence_diff",
    "normalize_line_endings",
    # Operations
    "DirectoryEntry",
    "FileInfo",
    "FileOperations",
    "FileReadResult",
    "TreeEntry",
    # Tool adapter
    "LLMFileSystemTools",
]
