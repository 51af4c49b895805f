"""
Sandboxed FS server configuration.

Settings come from (highest priority first) explicit values, environment
variables prefixed with ``SANDBOXED_FS_``, and defaults. A YAML or JSON
file can supply the explicit values.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sandboxed_fs.filesystem.config import FileSystemAccessConfig


class ServerSettings(BaseSettings):
    """
    Complete server configuration.

    Environment variables use ``__`` for nesting, e.g.
    ``SANDBOXED_FS_FILESYSTEM__ALLOW_WRITE=false`` or
    ``SANDBOXED_FS_FILESYSTEM__ALLOWED_DIRECTORIES='["/srv/workspace"]'``.

    Example:
        ```python
        settings = ServerSettings.from_file("~/.sandboxed-fs/config.yaml")
        tools = LLMFileSystemTools(settings.filesystem)
        ```
    """

    model_config = SettingsConfigDict(
        env_prefix="SANDBOXED_FS_",
        env_nested_delimiter="__",
        extra="forbid",
    )

    filesystem: FileSystemAccessConfig = Field(
        default_factory=FileSystemAccessConfig,
        description="Filesystem access restrictions",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the logging level name."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ServerSettings":
        """
        Load settings from a YAML or JSON file.

        File format (YAML):
            ```yaml
            filesystem:
              allowed_directories:
                - ~/projects
                - /srv/workspace
              allow_write: true
              max_file_size_bytes: 10000000
            log_level: INFO
            ```

        Args:
            path: Path to configuration file

        Returns:
            Loaded ServerSettings instance

        Raises:
            FileNotFoundError: If the config file doesn't exist
        """
        path = Path(path).expanduser().resolve()

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text()

        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        elif path.suffix == ".json":
            data = json.loads(content)
        else:
            # Try YAML first, then JSON
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError:
                data = json.loads(content)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServerSettings":
        return cls(**data)

    def with_overrides(
        self,
        directories: Optional[Sequence[Union[str, Path]]] = None,
        read_only: bool = False,
    ) -> "ServerSettings":
        """
        Return a copy with extra allowed directories and/or writes disabled.

        Args:
            directories: Directories appended to the configured ones
            read_only: Disable write operations

        Returns:
            New ServerSettings instance
        """
        data = self.filesystem.model_dump()
        if directories:
            data["allowed_directories"] = [*self.filesystem.allowed_directories, *directories]
        if read_only:
            data["allow_write"] = False
        return self.model_copy(update={"filesystem": FileSystemAccessConfig(**data)})

    def __str__(self) -> str:
        return (
            f"ServerSettings(directories={len(self.filesystem.allowed_directories)}, "
            f"allow_write={self.filesystem.allow_write}, log_level={self.log_level})"
        )
