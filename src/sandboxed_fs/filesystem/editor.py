"""
Tolerant, diff-producing text patching.

Edits are (old text, new text) pairs applied left to right, each against the
output of the previous one. An edit is located by exact substring first and
falls back to a line-by-line comparison that ignores leading and trailing
whitespace; the replacement then inherits the indentation of the matched
lines. Either every edit applies and the file is written once, or nothing is
written at all.
"""

import difflib
import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from sandboxed_fs.filesystem.exceptions import EditNotApplicableError
from sandboxed_fs.filesystem.resolver import PathResolver

logger = logging.getLogger(__name__)

_LEADING_WHITESPACE = re.compile(r"^\s*")

# Rule line emitted under the "Index:" header, as git-style patch tools do.
_INDEX_RULE = "=" * 67

# difflib writes a one-line range as "@@ -1 +1 @@"; patch tools expect "-1,1".
_HUNK_HEADER = re.compile(r"^@@ -(\d+)(,\d+)? \+(\d+)(,\d+)? @@")


class MatchStrategy(str, Enum):
    """How an edit was located in the working content."""

    EXACT = "exact"
    FUZZY = "fuzzy"


class EditInstruction(BaseModel):
    """A single replacement of ``old_text`` with ``new_text``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    old_text: str = Field(alias="oldText", description="Text to search for")
    new_text: str = Field(alias="newText", description="Text to replace it with")


EditLike = Union[EditInstruction, Mapping[str, Any]]


@dataclass
class PatchResult:
    """Outcome of an edit sequence applied to one file."""

    path: Path
    original: str
    content: str
    diff: str
    strategies: list[MatchStrategy] = field(default_factory=list)
    dry_run: bool = False

    @property
    def changed(self) -> bool:
        return self.original != self.content


def normalize_line_endings(text: str) -> str:
    """Convert CRLF line endings to LF."""
    return text.replace("\r\n", "\n")


def _leading_whitespace(line: str) -> str:
    return _LEADING_WHITESPACE.match(line).group(0)


def _diff_lines(text: str) -> list[str]:
    """Split on LF only, keeping line terminators."""
    lines = text.split("\n")
    result = [line + "\n" for line in lines[:-1]]
    if lines[-1]:
        result.append(lines[-1])
    return result


def _explicit_ranges(header: str) -> str:
    return _HUNK_HEADER.sub(
        lambda m: (
            f"@@ -{m.group(1)}{m.group(2) or ',1'} "
            f"+{m.group(3)}{m.group(4) or ',1'} @@"
        ),
        header,
    )


def create_unified_diff(original: str, modified: str, filepath: str = "file") -> str:
    """
    Render a unified diff between two versions of a file.

    Args:
        original: Content before the change
        modified: Content after the change
        filepath: Label used for both sides of the diff

    Returns:
        Unified diff text, or an empty string if the contents are identical
    """
    original = normalize_line_endings(original)
    modified = normalize_line_endings(modified)
    if original == modified:
        return ""

    hunks = difflib.unified_diff(
        _diff_lines(original),
        _diff_lines(modified),
        fromfile=filepath,
        tofile=filepath,
        fromfiledate="original",
        tofiledate="modified",
    )

    parts = [f"Index: {filepath}\n", f"{_INDEX_RULE}\n"]
    for line in hunks:
        if line.startswith("@@"):
            line = _explicit_ranges(line)
        if line.endswith("\n"):
            parts.append(line)
        else:
            parts.append(f"{line}\n\\ No newline at end of file\n")
    return "".join(parts)


def fence_diff(diff: str) -> str:
    """
    Wrap a diff in a markdown ``diff`` code fence.

    The fence starts at three backticks and grows until no run of that
    length occurs inside the diff.
    """
    width = 3
    while "`" * width in diff:
        width += 1
    fence = "`" * width
    return f"{fence}diff\n{diff}{fence}\n\n"


def _reindent(new_lines: list[str], old_lines: list[str], indent: str) -> list[str]:
    """Carry the matched block's indentation over to the replacement lines."""
    result = [indent + new_lines[0].lstrip()]
    for j, line in enumerate(new_lines[1:], start=1):
        old_indent = _leading_whitespace(old_lines[j]) if j < len(old_lines) else ""
        new_indent = _leading_whitespace(line)
        if not (old_indent and new_indent):
            result.append(line)
            continue
        delta = len(new_indent) - len(old_indent)
        if delta >= 0:
            line_indent = indent + " " * delta
        else:
            line_indent = indent[: max(0, len(indent) + delta)]
        result.append(line_indent + line.lstrip())
    return result


def _fuzzy_replace(content: str, old_text: str, new_text: str) -> Optional[str]:
    """Replace the first whitespace-insensitive line window matching ``old_text``."""
    old_lines = old_text.split("\n")
    content_lines = content.split("\n")
    expected = [line.strip() for line in old_lines]
    size = len(old_lines)

    for start in range(len(content_lines) - size + 1):
        window = content_lines[start : start + size]
        if all(line.strip() == want for line, want in zip(window, expected)):
            indent = _leading_whitespace(content_lines[start])
            content_lines[start : start + size] = _reindent(
                new_text.split("\n"), old_lines, indent
            )
            return "\n".join(content_lines)
    return None


def apply_edits_to_text(
    content: str,
    edits: Iterable[EditLike],
    path: Optional[str] = None,
) -> tuple[str, list[MatchStrategy]]:
    """
    Apply an edit sequence to in-memory text.

    Args:
        content: Text to edit (line endings are normalized first)
        edits: Ordered edit instructions
        path: File path reported in errors

    Returns:
        Tuple of (edited text, strategy used for each edit)

    Raises:
        EditNotApplicableError: On the first edit that cannot be located
    """
    working = normalize_line_endings(content)
    strategies: list[MatchStrategy] = []

    for index, edit in enumerate(edits):
        edit = EditInstruction.model_validate(edit)
        old_text = normalize_line_endings(edit.old_text)
        new_text = normalize_line_endings(edit.new_text)

        if old_text in working:
            working = working.replace(old_text, new_text, 1)
            strategies.append(MatchStrategy.EXACT)
            logger.debug(f"Edit {index} applied by exact match")
            continue

        replaced = _fuzzy_replace(working, old_text, new_text)
        if replaced is None:
            logger.debug(f"Edit {index} not found in {path or 'content'}")
            raise EditNotApplicableError(edit.old_text, path)
        working = replaced
        strategies.append(MatchStrategy.FUZZY)
        logger.debug(f"Edit {index} applied by whitespace-insensitive line match")

    return working, strategies


class FileEditor:
    """
    Apply edit sequences to files inside the sandbox.

    Usage:
        editor = FileEditor(resolver)

        diff = editor.apply_edits(
            "/srv/workspace/app.py",
            [{"oldText": "return x", "newText": "return y"}],
            dry_run=True,
        )
    """

    def __init__(self, resolver: PathResolver):
        """
        Initialize the editor.

        Args:
            resolver: Resolver used to validate every target path
        """
        self.resolver = resolver

    def compute_patch(
        self,
        path: Union[str, os.PathLike],
        edits: Iterable[EditLike],
        dry_run: bool = False,
    ) -> PatchResult:
        """
        Apply edits to a file and persist the result unless ``dry_run``.

        Args:
            path: File to edit
            edits: Ordered edit instructions
            dry_run: Compute the result and diff without writing

        Returns:
            PatchResult with the final content and unified diff

        Raises:
            AccessDeniedError: If the path is outside the allowed roots
            PathNotFoundError: If neither the path nor its parent exists
            EditNotApplicableError: If any edit cannot be located
        """
        instructions = [EditInstruction.model_validate(edit) for edit in edits]
        resolved = self.resolver.resolve(path)

        original = normalize_line_endings(self._read(resolved.path))
        content, strategies = apply_edits_to_text(
            original, instructions, path=str(resolved.path)
        )
        diff = create_unified_diff(original, content, os.fspath(path))

        if dry_run:
            logger.info(f"Dry run: {len(instructions)} edit(s) computed for {resolved.path}")
        else:
            self._write(resolved.path, content)
            logger.info(f"Applied {len(instructions)} edit(s) to {resolved.path}")

        return PatchResult(
            path=resolved.path,
            original=original,
            content=content,
            diff=diff,
            strategies=strategies,
            dry_run=dry_run,
        )

    def apply_edits(
        self,
        path: Union[str, os.PathLike],
        edits: Iterable[EditLike],
        dry_run: bool = False,
    ) -> str:
        """
        Apply edits to a file and return the fenced unified diff.

        See ``compute_patch`` for arguments and errors.
        """
        return fence_diff(self.compute_patch(path, edits, dry_run=dry_run).diff)

    def _read(self, path: Path) -> str:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()

    def _write(self, path: Path, content: str) -> None:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
