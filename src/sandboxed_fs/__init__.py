"""
Sandboxed FS - filesystem access for tool-calling agents.

This package lets an agent read, write, list, search and patch files while
confining every access to a configured set of root directories.
"""

__version__ = "0.1.0"

from sandboxed_fs.filesystem import (
    AccessDeniedError,
    AllowedRoots,
    EditInstruction,
    EditNotApplicableError,
    FileEditor,
    FileOperations,
    FileSystemAccessConfig,
    FileSystemError,
    LLMFileSystemTools,
    PathNotFoundError,
    PathResolver,
    PatchResult,
    ResolvedPath,
)

from sandboxed_fs.settings import ServerSettings

__all__ = [
    # Version
    "__version__",
    # Configuration
    "AllowedRoots",
    "FileSystemAccessConfig",
    "ServerSettings",
    # Core
    "PathResolver",
    "ResolvedPath",
    "FileEditor",
    "EditInstruction",
    "PatchResult",
    # Operations
    "FileOperations",
    "LLMFileSystemTools",
    # Errors
    "FileSystemError",
    "AccessDeniedError",
    "PathNotFoundError",
    "EditNotApplicableError",
]
