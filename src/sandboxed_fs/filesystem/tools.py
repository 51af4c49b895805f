"""
LLM filesystem tools interface.

Exposes the sandboxed filesystem to LLMs through function calling
(OpenAI function calling format). Arguments are validated with pydantic
models, whose JSON schemas double as the tool parameter schemas.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sandboxed_fs.filesystem.config import FileSystemAccessConfig
from sandboxed_fs.filesystem.editor import EditInstruction, FileEditor
from sandboxed_fs.filesystem.exceptions import AccessDeniedError, FileSystemError
from sandboxed_fs.filesystem.operations import FileOperations
from sandboxed_fs.filesystem.resolver import PathResolver

logger = logging.getLogger(__name__)


class PathArgs(BaseModel):
    path: str = Field(description="Path to the file or directory")


class ReadMultipleFilesArgs(BaseModel):
    paths: list[str] = Field(description="Paths of the files to read")


class WriteFileArgs(BaseModel):
    path: str = Field(description="Path to the file to write")
    content: str = Field(description="Content to write to the file")


class EditFileArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str = Field(description="Path to the file to edit")
    edits: list[EditInstruction] = Field(description="Ordered edits to apply")
    dry_run: bool = Field(
        default=False,
        alias="dryRun",
        description="Preview changes using git-style diff format",
    )


class MoveFileArgs(BaseModel):
    source: str = Field(description="Path to move from")
    destination: str = Field(description="Path to move to")


class SearchFilesArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str = Field(description="Directory to search from")
    pattern: str = Field(description="Case-insensitive substring of entry names")
    exclude_patterns: list[str] = Field(
        default_factory=list,
        alias="excludePatterns",
        description="Names or glob patterns to exclude",
    )


class NoArgs(BaseModel):
    pass


@dataclass(frozen=True)
class ToolDefinition:
    description: str
    args_model: type[BaseModel]
    writes: bool = False


TOOL_DEFINITIONS: dict[str, ToolDefinition] = {
    "read_file": ToolDefinition(
        "Read the complete contents of a file. Only works within allowed directories.",
        PathArgs,
    ),
    "read_multiple_files": ToolDefinition(
        "Read the contents of multiple files at once. Each file's content is returned "
        "with its path as a reference. Failed reads for individual files won't stop "
        "the entire operation. Only works within allowed directories.",
        ReadMultipleFilesArgs,
    ),
    "write_file": ToolDefinition(
        "Create a new file or completely overwrite an existing file with new content. "
        "Only works within allowed directories.",
        WriteFileArgs,
        writes=True,
    ),
    "edit_file": ToolDefinition(
        "Make line-based edits to a text file. Each edit replaces exact line sequences "
        "with new content. Returns a git-style diff showing the changes made. "
        "Only works within allowed directories.",
        EditFileArgs,
        writes=True,
    ),
    "create_directory": ToolDefinition(
        "Create a new directory or ensure a directory exists. If the directory already "
        "exists, this operation succeeds silently. Only works within allowed directories.",
        PathArgs,
        writes=True,
    ),
    "list_directory": ToolDefinition(
        "List all files and directories in a path, prefixed with [FILE] or [DIR]. "
        "Only works within allowed directories.",
        PathArgs,
    ),
    "directory_tree": ToolDefinition(
        "Get a recursive tree view of files and directories as JSON. Each entry has "
        "'name', 'type' (file/directory) and, for directories, 'children'. "
        "Only works within allowed directories.",
        PathArgs,
    ),
    "move_file": ToolDefinition(
        "Move or rename files and directories. Fails if the destination exists. "
        "Both source and destination must be within allowed directories.",
        MoveFileArgs,
        writes=True,
    ),
    "search_files": ToolDefinition(
        "Recursively search for files and directories whose name contains a pattern "
        "(case-insensitive). Returns full paths of all matches. "
        "Only searches within allowed directories.",
        SearchFilesArgs,
    ),
    "get_file_info": ToolDefinition(
        "Retrieve metadata about a file or directory: size, timestamps, type and "
        "permissions. Only works within allowed directories.",
        PathArgs,
    ),
    "list_allowed_directories": ToolDefinition(
        "Returns the list of directories that this server is allowed to access.",
        NoArgs,
    ),
}


class LLMFileSystemTools:
    """
    Unified filesystem interface for LLM function calling.

    Usage:
        config = FileSystemAccessConfig(
            allowed_directories=[Path("/srv/workspace")],
        )
        tools = LLMFileSystemTools(config)

        # Get tool schemas for LLM
        schemas = tools.get_tool_schemas()

        # Execute tool call
        result = await tools.execute_tool(
            tool_name="edit_file",
            arguments={
                "path": "/srv/workspace/main.py",
                "edits": [{"oldText": "x = 1", "newText": "x = 2"}],
                "dryRun": True,
            },
        )
    """

    def __init__(self, config: FileSystemAccessConfig):
        """
        Initialize LLM filesystem tools.

        Args:
            config: Filesystem access configuration
        """
        self.config = config
        self.resolver = PathResolver(config.allowed_roots())
        self.operations = FileOperations(config, self.resolver)
        self.editor = FileEditor(self.resolver)

    def available_tools(self) -> list[str]:
        return [
            name
            for name, definition in TOOL_DEFINITIONS.items()
            if self.config.allow_write or not definition.writes
        ]

    def get_tool_schemas(self) -> list[dict[str, Any]]:
        """
        Get OpenAI function calling schemas for all available tools.

        Write tools are only included when writes are allowed.

        Returns:
            List of tool schemas in OpenAI format
        """
        return [
            {
                "type": "function",
                "function": {
                    "name": name,
                    "description": TOOL_DEFINITIONS[name].description,
                    "parameters": TOOL_DEFINITIONS[name].args_model.model_json_schema(),
                },
            }
            for name in self.available_tools()
        ]

    async def execute_tool(
        self, tool_name: str, arguments: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Execute a tool call from an LLM.

        Args:
            tool_name: Name of the tool to execute
            arguments: Tool arguments (from LLM function call)

        Returns:
            Tool execution result as a dict with a ``success`` flag

        Raises:
            ValueError: If tool name is unknown
        """
        definition = TOOL_DEFINITIONS.get(tool_name)
        if definition is None:
            raise ValueError(f"Unknown tool: {tool_name}")

        try:
            args = definition.args_model.model_validate(arguments or {})
        except ValidationError as e:
            logger.warning(f"LLM {tool_name} called with invalid arguments: {e}")
            return self._failure(
                tool_name, f"Invalid arguments for {tool_name}: {e}", "ValidationError"
            )

        handler = getattr(self, f"_{tool_name}")
        try:
            # A dry-run edit only previews the diff
            previewing = getattr(args, "dry_run", False)
            if definition.writes and not self.config.allow_write and not previewing:
                raise AccessDeniedError(tool_name, "Write operations are disabled")
            result = await handler(args)
        except (FileSystemError, OSError, UnicodeDecodeError) as e:
            logger.warning(f"LLM {tool_name} failed: {e}")
            return self._failure(tool_name, str(e), type(e).__name__)

        return {"success": True, "tool": tool_name, **result}

    @staticmethod
    def _failure(tool_name: str, error: str, error_type: str) -> dict[str, Any]:
        return {
            "success": False,
            "tool": tool_name,
            "error": error,
            "error_type": error_type,
        }

    async def _read_file(self, args: PathArgs) -> dict[str, Any]:
        content = self.operations.read_file(args.path)
        return {"path": args.path, "content": content}

    async def _read_multiple_files(self, args: ReadMultipleFilesArgs) -> dict[str, Any]:
        results = await asyncio.gather(
            *(asyncio.to_thread(self.operations.read_file_result, path) for path in args.paths)
        )
        return {
            "content": "\n---\n".join(str(r) for r in results),
            "files": [r.model_dump() for r in results],
        }

    async def _write_file(self, args: WriteFileArgs) -> dict[str, Any]:
        self.operations.write_file(args.path, args.content)
        return {"path": args.path, "content": f"Successfully wrote to {args.path}"}

    async def _edit_file(self, args: EditFileArgs) -> dict[str, Any]:
        diff = self.editor.apply_edits(args.path, args.edits, dry_run=args.dry_run)
        return {"path": args.path, "content": diff, "dry_run": args.dry_run}

    async def _create_directory(self, args: PathArgs) -> dict[str, Any]:
        self.operations.create_directory(args.path)
        return {"path": args.path, "content": f"Successfully created directory {args.path}"}

    async def _list_directory(self, args: PathArgs) -> dict[str, Any]:
        entries = self.operations.list_directory(args.path)
        return {
            "path": args.path,
            "content": FileOperations.format_listing(entries),
            "entries": [e.model_dump() for e in entries],
        }

    async def _directory_tree(self, args: PathArgs) -> dict[str, Any]:
        tree = [e.model_dump(exclude_none=True) for e in self.operations.directory_tree(args.path)]
        return {"path": args.path, "content": json.dumps(tree, indent=2)}

    async def _move_file(self, args: MoveFileArgs) -> dict[str, Any]:
        self.operations.move_file(args.source, args.destination)
        return {"content": f"Successfully moved {args.source} to {args.destination}"}

    async def _search_files(self, args: SearchFilesArgs) -> dict[str, Any]:
        matches = self.operations.search_files(args.path, args.pattern, args.exclude_patterns)
        return {
            "path": args.path,
            "content": "\n".join(str(m) for m in matches) if matches else "No matches found",
            "matches": [str(m) for m in matches],
            "count": len(matches),
        }

    async def _get_file_info(self, args: PathArgs) -> dict[str, Any]:
        info = self.operations.get_file_info(args.path)
        return {"path": args.path, "content": str(info), "info": info.model_dump(mode="json")}

    async def _list_allowed_directories(self, args: NoArgs) -> dict[str, Any]:
        directories = [str(d) for d in self.operations.list_allowed_directories()]
        return {
            "content": "Allowed directories:\n" + "\n".join(directories),
            "directories": directories,
        }

    def get_summary(self) -> dict[str, Any]:
        """
        Get a summary of the filesystem access configuration.

        Returns:
            Dict with configuration summary
        """
        return {
            "allowed_directories": [str(d) for d in self.config.allowed_directories],
            "allow_write": self.config.allow_write,
            "max_file_size_mb": self.config.max_file_size_bytes / (1024 * 1024),
            "max_search_results": self.config.max_search_results,
            "tools": self.available_tools(),
        }
