"""
CLI for sandboxed-fs.

Serves the filesystem tools over a JSON-lines stdio loop and offers
one-shot commands for resolving paths and applying edits.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, TextIO

import click
import yaml
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.syntax import Syntax

from sandboxed_fs import __version__
from sandboxed_fs.filesystem.editor import EditInstruction, FileEditor
from sandboxed_fs.filesystem.exceptions import FileSystemError
from sandboxed_fs.filesystem.resolver import PathResolver
from sandboxed_fs.filesystem.tools import LLMFileSystemTools
from sandboxed_fs.settings import ServerSettings

# Load environment variables
load_dotenv()

# stdout is reserved for command output and the tool protocol
console = Console(stderr=True)

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", verbose: bool = False) -> None:
    """Setup rich logging."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def sandbox_options(func):
    """Options shared by the one-shot commands."""
    func = click.option(
        "--verbose", "-v", is_flag=True, help="Enable verbose logging"
    )(func)
    func = click.option(
        "--read-only", is_flag=True, help="Disable write operations"
    )(func)
    func = click.option(
        "--config",
        "-c",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="Path to YAML/JSON settings file",
    )(func)
    func = click.option(
        "--allow",
        "-a",
        "directories",
        multiple=True,
        type=click.Path(),
        help="Allowed directory (repeatable)",
    )(func)
    return func


def load_settings(
    config: Optional[str], directories: tuple[str, ...], read_only: bool
) -> ServerSettings:
    """Load settings from file/environment and apply command-line overrides."""
    try:
        settings = ServerSettings.from_file(config) if config else ServerSettings()
        return settings.with_overrides(list(directories), read_only=read_only)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(1)


def load_edits(path: Path) -> list[EditInstruction]:
    """
    Load edit instructions from a YAML or JSON file.

    The file holds either a list of ``{oldText, newText}`` objects or a
    mapping with such a list under ``edits``.
    """
    data = yaml.safe_load(path.read_text())
    if isinstance(data, dict):
        data = data.get("edits")
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of edits in {path}")
    return [EditInstruction.model_validate(item) for item in data]


@click.group()
@click.version_option(version=__version__)
def cli():
    """Sandboxed FS CLI - filesystem tools confined to allowed directories."""
    pass


@cli.command()
@click.argument("directories", nargs=-1, type=click.Path())
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Path to YAML/JSON settings file",
)
@click.option("--read-only", is_flag=True, help="Disable write operations")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def serve(
    directories: tuple[str, ...],
    config: Optional[str],
    read_only: bool,
    verbose: bool,
):
    """
    Serve the filesystem tools over stdin/stdout.

    Each input line is a JSON request {"id": ..., "name": ..., "arguments": {...}}
    and produces one JSON response line {"id": ..., "result": {...}}.
    The request name "tools/list" returns the tool schemas.

    Examples:

        sandboxed-fs serve ~/projects /srv/workspace

        sandboxed-fs serve -c config.yaml --read-only
    """
    settings = load_settings(config, directories, read_only)
    setup_logging(settings.log_level, verbose)

    try:
        settings.filesystem.validate_directories()
    except FileSystemError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    tools = LLMFileSystemTools(settings.filesystem)
    summary = tools.get_summary()

    console.print(
        Panel(
            "[bold cyan]Sandboxed filesystem server[/bold cyan]\n\n"
            + "\n".join(f"Allowed: [green]{d}[/green]" for d in summary["allowed_directories"])
            + f"\nWrites: [yellow]{summary['allow_write']}[/yellow]"
            + f"\nTools: [green]{len(summary['tools'])}[/green]",
            title="Starting",
        )
    )
    logger.info("Sandboxed filesystem server running on stdio")
    logger.info(f"Allowed directories: {summary['allowed_directories']}")

    asyncio.run(serve_stdio(tools, sys.stdin, sys.stdout))


async def serve_stdio(tools: LLMFileSystemTools, reader: TextIO, writer: TextIO) -> None:
    """Answer JSON-lines tool requests until the input is exhausted."""
    while True:
        line = await asyncio.to_thread(reader.readline)
        if not line:
            break
        if not line.strip():
            continue
        response = await handle_request(tools, line)
        writer.write(json.dumps(response) + "\n")
        writer.flush()
    logger.info("Input closed, stopping server")


async def handle_request(tools: LLMFileSystemTools, line: str) -> dict[str, Any]:
    """Decode one request line and execute it. Never raises for bad input."""
    try:
        request = json.loads(line)
    except json.JSONDecodeError as e:
        return _error_response(None, None, f"Invalid JSON: {e}", "JSONDecodeError")

    if not isinstance(request, dict) or not isinstance(request.get("name"), str):
        return _error_response(
            None, None, "Request must be an object with a string 'name'", "InvalidRequest"
        )

    request_id = request.get("id")
    name = request["name"]

    if name == "tools/list":
        return {"id": request_id, "result": {"success": True, "tools": tools.get_tool_schemas()}}

    arguments = request.get("arguments") or {}
    if not isinstance(arguments, dict):
        return _error_response(request_id, name, "'arguments' must be an object", "InvalidRequest")

    try:
        result = await tools.execute_tool(name, arguments)
    except ValueError as e:
        return _error_response(request_id, name, str(e), "UnknownTool")
    return {"id": request_id, "result": result}


def _error_response(
    request_id: Any, name: Optional[str], error: str, error_type: str
) -> dict[str, Any]:
    return {
        "id": request_id,
        "result": {"success": False, "tool": name, "error": error, "error_type": error_type},
    }


@cli.command()
@click.argument("path")
@sandbox_options
def resolve(
    path: str,
    directories: tuple[str, ...],
    config: Optional[str],
    read_only: bool,
    verbose: bool,
):
    """
    Resolve a path inside the allowed directories.

    Prints the canonical path and whether it exists.

    Examples:

        sandboxed-fs resolve notes/todo.txt -a .
    """
    settings = load_settings(config, directories, read_only)
    setup_logging(settings.log_level, verbose)
    resolver = PathResolver(settings.filesystem.allowed_roots())

    try:
        resolved = resolver.resolve(path)
    except (FileSystemError, OSError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    print(f"{resolved.path}\t{resolved.status.value}")


@cli.command()
@click.argument("path")
@click.option(
    "--edits",
    "-e",
    "edits_file",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="YAML/JSON file with a list of {oldText, newText} edits",
)
@click.option("--dry-run", is_flag=True, help="Show the diff without writing")
@sandbox_options
def edit(
    path: str,
    edits_file: str,
    dry_run: bool,
    directories: tuple[str, ...],
    config: Optional[str],
    read_only: bool,
    verbose: bool,
):
    """
    Apply edits to a file and print the unified diff.

    Examples:

        sandboxed-fs edit src/app.py -e edits.yaml -a . --dry-run
    """
    settings = load_settings(config, directories, read_only)
    setup_logging(settings.log_level, verbose)

    if not settings.filesystem.allow_write and not dry_run:
        console.print("[bold red]Error:[/bold red] Write operations are disabled (use --dry-run)")
        sys.exit(1)

    try:
        edits = load_edits(Path(edits_file))
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[bold red]Invalid edits file:[/bold red] {e}")
        sys.exit(1)

    editor = FileEditor(PathResolver(settings.filesystem.allowed_roots()))
    try:
        result = editor.compute_patch(path, edits, dry_run=dry_run)
    except (FileSystemError, OSError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    if not result.diff:
        console.print("[yellow]No changes.[/yellow]")
    elif sys.stdout.isatty():
        Console().print(Syntax(result.diff, "diff"))
    else:
        print(result.diff, end="")

    if dry_run:
        console.print("[dim]Dry run - file not modified.[/dim]")


@cli.command()
@sandbox_options
def tools(
    directories: tuple[str, ...],
    config: Optional[str],
    read_only: bool,
    verbose: bool,
):
    """
    Print the tool schemas (OpenAI function calling format) as JSON.

    Examples:

        sandboxed-fs tools -a . --read-only
    """
    settings = load_settings(config, directories, read_only)
    setup_logging(settings.log_level, verbose)
    print(json.dumps(LLMFileSystemTools(settings.filesystem).get_tool_schemas(), indent=2))


if __name__ == "__main__":
    cli()
