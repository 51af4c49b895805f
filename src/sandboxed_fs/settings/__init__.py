"""
Settings and configuration for Sandboxed FS.

Example:
    ```python
    from sandboxed_fs.settings import ServerSettings

    # Load from file, then add a directory given on the command line
    settings = ServerSettings.from_file("config.yaml").with_overrides(["~/scratch"])
    print(settings.filesystem.allowed_directories)
    ```
"""

from sandboxed_fs.settings.config import ServerSettings

__all__ = [
    "ServerSettings",
]
