"""Shared utility functions for railstack.

Provides async command execution, Rich-based leveled console output, and a
few file-system helpers used by the composer, invoker and patcher.
"""

from __future__ import annotations

import asyncio
import shutil
import stat
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: float | None = None,
    capture: bool = True,
) -> tuple[int, str, str]:
    """Run a command asynchronously.

    Args:
        cmd: Program and arguments. Never passed through a shell.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
            ``None`` waits indefinitely, which is what the external
            generators use.
        capture: Whether to capture stdout/stderr (if ``False`` they inherit
            the parent's streams so the user sees the tool's own output).

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  If *capture* is ``False``
        the stdout/stderr strings will be empty.  A missing executable is
        reported as returncode 127.
    """
    stdout_pipe = asyncio.subprocess.PIPE if capture else None
    stderr_pipe = asyncio.subprocess.PIPE if capture else None

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=stdout_pipe,
            stderr=stderr_pipe,
            cwd=str(cwd) if cwd else None,
        )
    except FileNotFoundError:
        return (127, "", f"Command not found: {cmd[0]}")

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def write_file(path: Path, content: str, *, append: bool = False) -> None:
    """Create parent dirs and write (or append) *content* to *path*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a" if append else "w", encoding="utf-8") as handle:
        handle.write(content)


def make_executable(path: Path) -> None:
    """Set the executable bit on a file."""
    current = path.stat().st_mode
    path.chmod(current | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def remove_tree(path: Path) -> bool:
    """Delete *path* recursively if it exists. Returns whether anything was removed."""
    if not path.exists():
        return False
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()
    return True


def discard_tree(path: Path) -> bool:
    """Best-effort ``remove_tree`` for failure paths.

    A cleanup error is reported as a warning and never replaces the error
    that triggered the cleanup.
    """
    try:
        return remove_tree(path)
    except OSError as exc:
        print_warning(f"Could not remove {path}: {exc}. Please delete it manually.")
        return False


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_info(message: str) -> None:
    """Print a blue ``[INFO]`` line."""
    console.print(f"[bold blue][INFO][/bold blue] {escape(message)}", highlight=False)


def print_success(message: str) -> None:
    """Print a green ``[SUCCESS]`` line."""
    console.print(f"[bold green][SUCCESS][/bold green] {escape(message)}", highlight=False)


def print_warning(message: str) -> None:
    """Print a yellow ``[WARN]`` line."""
    console.print(f"[bold yellow][WARN][/bold yellow] {escape(message)}", highlight=False)


def print_error(message: str) -> None:
    """Print a red ``[ERROR]`` line to stderr."""
    err_console.print(f"[bold red][ERROR][/bold red] {escape(message)}", highlight=False)


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()
