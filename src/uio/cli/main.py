# Author: PB
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/uio/cli/main.py

"""
Command-line front end for uio.

Each command maps onto one registry operation. Library errors are turned
into a single message naming the locator and exit status 1; --verbose adds
the chain of underlying causes.
"""

# Standard library imports
import functools
import shutil
from dataclasses import dataclass
from importlib.metadata import version
from typing import Any, Callable, Optional

# Third-party imports
import orjson
import typer
from rich.console import Console
from rich.markup import escape

# Local uio imports
from uio.config.manager import Config, ensure_user_config, user_config_path
from uio.locator import to_locator
from uio.storage import BackendRegistry, registered_schemes
from uio.system.display import ListingSummary, format_entry
from uio.system.exceptions import UioError
from uio.system.logging_setup import setup_logging

COPY_BUFFER_SIZE = 8192

app = typer.Typer(
    help="""uio - one set of file operations for every storage backend

[bold green]Data:[/bold green] from (cat), to, copy (cp)
[bold blue]Inspect:[/bold blue] ls, size, exists
[bold red]Modify:[/bold red] mkdir, delete (rm)

Examples:
  cat file.txt | uio to sftp://host/path/to/file.txt
  uio from sftp://host/path/to/file.txt > file.txt
  uio ls -lh sftp://host/path/to/dir/
""",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

console = Console(highlight=False, soft_wrap=True, emoji=False)
err_console = Console(stderr=True, highlight=False, soft_wrap=True, emoji=False)


@dataclass
class CliState:
    verbose: bool = False
    registry: Optional[BackendRegistry] = None


def _state(ctx: typer.Context) -> CliState:
    if not isinstance(ctx.obj, CliState):
        ctx.obj = CliState()
    return ctx.obj


def load_registry(state: CliState) -> BackendRegistry:
    """Bootstrap the user config if needed, then build the registry from the config files."""
    if state.registry is None:
        ensure_user_config(BackendRegistry(Config()))
        config = Config.load()
        setup_logging(state.verbose, config.local_log)
        state.registry = BackendRegistry(config)
    return state.registry


def handle_operation_error(operation: str, error: Exception, verbose: bool = False) -> None:
    """Print one line for the error (plus its causes when verbose) and exit 1."""
    err_console.print(f"[red]✗[/red] Error {operation}: {escape(str(error))}", markup=True)
    if verbose:
        cause = error.__cause__
        while cause is not None:
            err_console.print(f"  caused by {type(cause).__name__}: {cause}", markup=False)
            cause = cause.__cause__
    raise typer.Exit(1)


def operation(name: str) -> Callable:
    """Run a command body with the registry, converting uio errors to exit codes."""
    def decorator(handler: Callable) -> Callable:
        @functools.wraps(handler)
        def wrapper(ctx: typer.Context, *args, **kwargs) -> Any:
            state = _state(ctx)
            try:
                return handler(load_registry(state), *args, **kwargs)
            except UioError as e:
                handle_operation_error(name, e, state.verbose)
        return wrapper
    return decorator


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        try:
            pkg_version = version("uio")
        except Exception as e:
            pkg_version = f"unknown ({e})"
        console.print(f"uio version {pkg_version}")
        console.print(f"Backends: {' '.join(registered_schemes())}")
        console.print(f"Config:   {user_config_path()}")
        raise typer.Exit()


@app.callback()
def global_options(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True,
        help="Show version and exit"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print error causes and debug logs to stderr"),
) -> None:
    """uio - read, write, copy and list files on any supported backend."""
    setup_logging(verbose)
    ctx.obj = CliState(verbose=verbose)


# =============================================================================
# DATA COMMANDS
# =============================================================================

@operation("reading")
def _from(registry: BackendRegistry, locator: str) -> None:
    stdout = typer.get_binary_stream("stdout")
    with registry.open_read(to_locator(locator)) as src:
        shutil.copyfileobj(src, stdout, COPY_BUFFER_SIZE)
    stdout.flush()


@app.command(name="from")
def from_command(ctx: typer.Context, locator: str = typer.Argument(..., help="File to read")) -> None:
    """[bold green]Data[/bold green]: Write the contents of a file to stdout."""
    _from(ctx, locator)


@app.command(name="cat", hidden=True)
def cat_command(ctx: typer.Context, locator: str = typer.Argument(..., help="File to read")) -> None:
    """Alias for `from`."""
    _from(ctx, locator)


@app.command(name="to")
def to_command(ctx: typer.Context, locator: str = typer.Argument(..., help="File to write")) -> None:
    """[bold green]Data[/bold green]: Write stdin to a file."""
    _to(ctx, locator)


@operation("writing")
def _to(registry: BackendRegistry, locator: str) -> None:
    stdin = typer.get_binary_stream("stdin")
    with registry.open_write(to_locator(locator)) as dst:
        shutil.copyfileobj(stdin, dst, COPY_BUFFER_SIZE)


@operation("copying")
def _copy(registry: BackendRegistry, source: str, destination: str) -> None:
    registry.copy(to_locator(source), to_locator(destination))


@app.command(name="copy")
def copy_command(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Source file"),
    destination: str = typer.Argument(..., help="Destination file"),
) -> None:
    """[bold green]Data[/bold green]: Copy a file, possibly between backends."""
    _copy(ctx, source, destination)


@app.command(name="cp", hidden=True)
def cp_command(ctx: typer.Context, source: str = typer.Argument(...), destination: str = typer.Argument(...)) -> None:
    """Alias for `copy`."""
    _copy(ctx, source, destination)


# =============================================================================
# INSPECT COMMANDS
# =============================================================================

@operation("getting size")
def _size(registry: BackendRegistry, locator: str) -> None:
    console.print(str(registry.size(to_locator(locator))), markup=False)


@app.command(name="size")
def size_command(ctx: typer.Context, locator: str = typer.Argument(..., help="File to measure")) -> None:
    """[bold blue]Inspect[/bold blue]: Print the size of a file in bytes."""
    _size(ctx, locator)


@operation("checking existence")
def _exists(registry: BackendRegistry, locator: str) -> None:
    if not registry.exists(to_locator(locator)):
        raise typer.Exit(1)


@app.command(name="exists")
def exists_command(ctx: typer.Context, locator: str = typer.Argument(..., help="File or directory")) -> None:
    """[bold blue]Inspect[/bold blue]: Exit with status 0 if the file exists, 1 otherwise."""
    _exists(ctx, locator)


@operation("listing")
def _ls(registry: BackendRegistry, locator: str, recurse: bool, attrs: bool,
        summarize: bool, human_readable: bool, to_json: bool) -> None:
    summary = ListingSummary()
    with registry.list(to_locator(locator), recurse=recurse, extended=attrs) as entries:
        for entry in entries:
            if to_json:
                console.print(orjson.dumps(entry.to_dict()).decode(), markup=False)
            else:
                console.print(format_entry(entry, long=attrs, human_readable=human_readable), markup=False)
            summary.add(entry)
    if summarize:
        console.print(summary.render(human_readable), markup=False)


@app.command(name="ls")
def ls_command(
    ctx: typer.Context,
    locator: str = typer.Argument(..., help="Directory (or file) to list"),
    recurse: bool = typer.Option(False, "--recurse", "-r", help="List files and directories recursively"),
    attrs: bool = typer.Option(False, "--attrs", "-l", help="List in long format (show attributes)"),
    summarize: bool = typer.Option(False, "--summarize", "-s", help="Print total size, file and dir count"),
    human_readable: bool = typer.Option(False, "--human-readable", "-h", help="Print sizes like 1K 234M 2G"),
    to_json: bool = typer.Option(False, "--json", help="Output one JSON object per entry"),
) -> None:
    """[bold blue]Inspect[/bold blue]: List a directory."""
    _ls(ctx, locator, recurse, attrs, summarize, human_readable, to_json)


# =============================================================================
# MODIFY COMMANDS
# =============================================================================

@operation("creating directory")
def _mkdir(registry: BackendRegistry, locator: str) -> None:
    registry.mkdir(to_locator(locator))


@app.command(name="mkdir")
def mkdir_command(ctx: typer.Context, locator: str = typer.Argument(..., help="Directory to create")) -> None:
    """[bold red]Modify[/bold red]: Create a directory."""
    _mkdir(ctx, locator)


@operation("deleting")
def _delete(registry: BackendRegistry, locator: str) -> None:
    registry.delete(to_locator(locator))


@app.command(name="delete")
def delete_command(ctx: typer.Context, locator: str = typer.Argument(..., help="File or empty directory")) -> None:
    """[bold red]Modify[/bold red]: Delete a file or an empty directory."""
    _delete(ctx, locator)


@app.command(name="rm", hidden=True)
def rm_command(ctx: typer.Context, locator: str = typer.Argument(...)) -> None:
    """Alias for `delete`."""
    _delete(ctx, locator)



# =============================================================================
# ENTRY POINT
# =============================================================================

def main() -> None:  # pragma: no cover - entry point
    """Entry point for the uio CLI application."""
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
