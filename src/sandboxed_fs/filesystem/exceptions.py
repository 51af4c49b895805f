"""
Exceptions for sandboxed filesystem operations.
"""

from typing import Optional


class FileSystemError(Exception):
    """Base exception for sandboxed filesystem operations."""

    pass


class AccessDeniedError(FileSystemError):
    """Raised when a path, or the real target of a symlink, is outside the allowed roots."""

    def __init__(
        self,
        path: str,
        reason: str = "Access denied - path outside allowed directories",
    ):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class PathNotFoundError(FileSystemError):
    """Raised when neither a path nor its parent directory exists."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"No such file or directory: {path}")


class InvalidPathError(FileSystemError):
    """Raised when a path is empty, malformed, or not the expected kind."""

    def __init__(self, path: str, reason: str = "Invalid path"):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class EditNotApplicableError(FileSystemError):
    """Raised when an edit's old text cannot be located in the file."""

    def __init__(self, old_text: str, path: Optional[str] = None):
        self.old_text = old_text
        self.path = path
        super().__init__(f"Could not find exact match for edit:\n{old_text}")


class FileSizeLimitExceededError(FileSystemError):
    """Raised when a file exceeds the size limit."""

    def __init__(self, path: str, size: int, limit: int):
        self.path = path
        self.size = size
        self.limit = limit
        super().__init__(f"File too large ({size} bytes > {limit} bytes): {path}")
