"""
Tests for the LLM tool adapter.
"""

import json
import tempfile
from pathlib import Path

import pytest

from sandboxed_fs.filesystem import FileSystemAccessConfig, LLMFileSystemTools


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def llm_tools(temp_dir):
    """Create a LLMFileSystemTools instance."""
    return LLMFileSystemTools(FileSystemAccessConfig(allowed_directories=[temp_dir]))


@pytest.fixture
def read_only_tools(temp_dir):
    """Create a LLMFileSystemTools instance with writes disabled."""
    return LLMFileSystemTools(
        FileSystemAccessConfig(allowed_directories=[temp_dir], allow_write=False)
    )


class TestToolSchemas:
    """Test tool schema generation."""

    def test_get_tool_schemas(self, llm_tools):
        """Test that all tools are offered in OpenAI format."""
        schemas = llm_tools.get_tool_schemas()
        names = [s["function"]["name"] for s in schemas]

        assert len(schemas) == 11
        assert all(s["type"] == "function" for s in schemas)
        assert "edit_file" in names
        assert "list_allowed_directories" in names

    def test_read_only_hides_write_tools(self, read_only_tools):
        """Test that write tools are not offered when writes are disabled."""
        names = {s["function"]["name"] for s in read_only_tools.get_tool_schemas()}

        assert names.isdisjoint({"write_file", "edit_file", "create_directory", "move_file"})
        assert "read_file" in names
        assert len(names) == 7

    def test_edit_file_schema_uses_wire_names(self, llm_tools):
        """Test that the edit_file parameters use camelCase wire names."""
        schema = next(
            s["function"]["parameters"]
            for s in llm_tools.get_tool_schemas()
            if s["function"]["name"] == "edit_file"
        )
        assert "dryRun" in schema["properties"]
        assert schema["required"] == ["path", "edits"]
        assert "oldText" in json.dumps(schema)

    def test_get_summary(self, temp_dir, read_only_tools):
        """Test the configuration summary."""
        summary = read_only_tools.get_summary()
        assert summary["allowed_directories"] == [str(temp_dir)]
        assert summary["allow_write"] is False
        assert "write_file" not in summary["tools"]


class TestToolExecution:
    """Test tool execution."""

    @pytest.mark.asyncio
    async def test_read_file_tool(self, temp_dir, llm_tools):
        """Test read_file tool."""
        (temp_dir / "test.txt").write_text("hello")

        result = await llm_tools.execute_tool("read_file", {"path": str(temp_dir / "test.txt")})

        assert result["success"] is True
        assert result["tool"] == "read_file"
        assert result["content"] == "hello"

    @pytest.mark.asyncio
    async def test_read_file_tool_denied(self, llm_tools):
        """Test read_file tool outside the allowed roots."""
        result = await llm_tools.execute_tool("read_file", {"path": "/etc/passwd"})

        assert result["success"] is False
        assert result["error_type"] == "AccessDeniedError"
        assert "Access denied" in result["error"]

    @pytest.mark.asyncio
    async def test_unknown_tool(self, llm_tools):
        """Test that unknown tool names raise."""
        with pytest.raises(ValueError, match="Unknown tool"):
            await llm_tools.execute_tool("delete_everything", {})

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, llm_tools):
        """Test that malformed arguments produce a validation failure."""
        result = await llm_tools.execute_tool("read_file", {})

        assert result["success"] is False
        assert result["error_type"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_read_multiple_files_tool(self, temp_dir, llm_tools):
        """Test read_multiple_files with one failing path."""
        (temp_dir / "a.txt").write_text("A")

        result = await llm_tools.execute_tool(
            "read_multiple_files",
            {"paths": [str(temp_dir / "a.txt"), str(temp_dir / "missing.txt")]},
        )

        assert result["success"] is True
        first, second = result["content"].split("\n---\n")
        assert first == f"{temp_dir / 'a.txt'}:\nA\n"
        assert second.startswith(f"{temp_dir / 'missing.txt'}: Error - ")
        assert [f["error"] is None for f in result["files"]] == [True, False]

    @pytest.mark.asyncio
    async def test_write_file_tool(self, temp_dir, llm_tools):
        """Test write_file tool."""
        path = str(temp_dir / "out.txt")
        result = await llm_tools.execute_tool("write_file", {"path": path, "content": "data"})

        assert result["success"] is True
        assert result["content"] == f"Successfully wrote to {path}"
        assert (temp_dir / "out.txt").read_text() == "data"

    @pytest.mark.asyncio
    async def test_write_tool_read_only(self, temp_dir, read_only_tools):
        """Test that write tools fail when writes are disabled."""
        result = await read_only_tools.execute_tool(
            "write_file", {"path": str(temp_dir / "out.txt"), "content": "data"}
        )

        assert result["success"] is False
        assert result["error_type"] == "AccessDeniedError"
        assert not (temp_dir / "out.txt").exists()

    @pytest.mark.asyncio
    async def test_edit_preview_read_only(self, temp_dir, read_only_tools):
        """Test that a dry-run edit is allowed when writes are disabled, a real one is not."""
        target = temp_dir / "app.py"
        target.write_text("x = 1\n")
        arguments = {"path": str(target), "edits": [{"oldText": "x = 1", "newText": "x = 2"}]}

        preview = await read_only_tools.execute_tool("edit_file", {**arguments, "dryRun": True})
        assert preview["success"] is True
        assert "+x = 2" in preview["content"]

        result = await read_only_tools.execute_tool("edit_file", arguments)
        assert result["success"] is False
        assert result["error_type"] == "AccessDeniedError"
        assert target.read_text() == "x = 1\n"

    @pytest.mark.asyncio
    async def test_os_error_passthrough(self, temp_dir, llm_tools):
        """Test that an unchanged OS error is reported with its own type."""
        (temp_dir / "f.txt").write_text("x")

        result = await llm_tools.execute_tool("read_file", {"path": str(temp_dir / "f.txt" / "x")})

        assert result["success"] is False
        assert result["error_type"] == "NotADirectoryError"

    @pytest.mark.asyncio
    async def test_edit_file_tool_dry_run(self, temp_dir, llm_tools):
        """Test edit_file tool in dry-run mode."""
        target = temp_dir / "app.py"
        target.write_text("x = 1\n")

        result = await llm_tools.execute_tool(
            "edit_file",
            {
                "path": str(target),
                "edits": [{"oldText": "x = 1", "newText": "x = 2"}],
                "dryRun": True,
            },
        )

        assert result["success"] is True
        assert result["dry_run"] is True
        assert result["content"].startswith("```diff\n")
        assert "+x = 2" in result["content"]
        assert target.read_text() == "x = 1\n"

    @pytest.mark.asyncio
    async def test_edit_file_tool_not_found(self, temp_dir, llm_tools):
        """Test edit_file tool when an edit cannot be located."""
        target = temp_dir / "app.py"
        target.write_text("x = 1\n")

        result = await llm_tools.execute_tool(
            "edit_file",
            {"path": str(target), "edits": [{"oldText": "y = 1", "newText": "y = 2"}]},
        )

        assert result["success"] is False
        assert result["error_type"] == "EditNotApplicableError"
        assert target.read_text() == "x = 1\n"

    @pytest.mark.asyncio
    async def test_create_directory_and_list(self, temp_dir, llm_tools):
        """Test create_directory followed by list_directory."""
        await llm_tools.execute_tool("create_directory", {"path": str(temp_dir / "sub")})
        (temp_dir / "file.txt").write_text("x")

        result = await llm_tools.execute_tool("list_directory", {"path": str(temp_dir)})

        assert result["content"] == "[FILE] file.txt\n[DIR] sub"

    @pytest.mark.asyncio
    async def test_directory_tree_tool(self, temp_dir, llm_tools):
        """Test directory_tree returns JSON."""
        (temp_dir / "sub").mkdir()
        (temp_dir / "sub" / "a.txt").write_text("a")

        result = await llm_tools.execute_tool("directory_tree", {"path": str(temp_dir)})

        assert json.loads(result["content"]) == [
            {"name": "sub", "type": "directory", "children": [{"name": "a.txt", "type": "file"}]}
        ]

    @pytest.mark.asyncio
    async def test_move_file_tool(self, temp_dir, llm_tools):
        """Test move_file tool."""
        (temp_dir / "a.txt").write_text("A")

        result = await llm_tools.execute_tool(
            "move_file",
            {"source": str(temp_dir / "a.txt"), "destination": str(temp_dir / "b.txt")},
        )

        assert result["success"] is True
        assert (temp_dir / "b.txt").exists()

    @pytest.mark.asyncio
    async def test_search_files_tool(self, temp_dir, llm_tools):
        """Test search_files tool with and without matches."""
        (temp_dir / "Report.md").write_text("r")

        result = await llm_tools.execute_tool(
            "search_files", {"path": str(temp_dir), "pattern": "report"}
        )
        assert result["count"] == 1
        assert result["content"] == str(temp_dir / "Report.md")

        result = await llm_tools.execute_tool(
            "search_files",
            {"path": str(temp_dir), "pattern": "report", "excludePatterns": ["*.md"]},
        )
        assert result["content"] == "No matches found"

    @pytest.mark.asyncio
    async def test_get_file_info_tool(self, temp_dir, llm_tools):
        """Test get_file_info tool."""
        (temp_dir / "a.txt").write_text("abc")

        result = await llm_tools.execute_tool("get_file_info", {"path": str(temp_dir / "a.txt")})

        assert result["info"]["size"] == 3
        assert "is_file: True" in result["content"]

    @pytest.mark.asyncio
    async def test_list_allowed_directories_tool(self, temp_dir, llm_tools):
        """Test list_allowed_directories tool."""
        result = await llm_tools.execute_tool("list_allowed_directories")

        assert result["content"] == f"Allowed directories:\n{temp_dir}"
        assert result["directories"] == [str(temp_dir)]
