"""
CLI module for sandboxed-fs.

Provides the command-line interface for serving the sandboxed filesystem
tools and for one-shot path resolution and file edits.
"""

from sandboxed_fs.cli.main import cli

__all__ = ["cli"]
