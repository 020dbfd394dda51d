"""Shared utility functions for the application builder.

Provides async command execution, name helpers and Rich-based console
reporting.  Every step, the mutation engine and the prompt controller write
through the single module-level ``console`` so output stays ordered.
"""

from __future__ import annotations

import asyncio
import os
import re
from pathlib import Path

from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: int = 120,
    capture: bool = True,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a command asynchronously and wait for it to exit.

    Args:
        cmd: Program and arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        capture: Whether to capture stdout/stderr (if ``False`` they inherit
            the parent's streams, which lets generators print progress).
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  A timeout is reported as
        return code ``-1`` with an explanatory stderr.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    stdout_pipe = asyncio.subprocess.PIPE if capture else None
    stderr_pipe = asyncio.subprocess.PIPE if capture else None

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=stdout_pipe,
            stderr=stderr_pipe,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
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
# String / name helpers
# ---------------------------------------------------------------------------


def underscore(name: str) -> str:
    """Convert a CamelCase or namespaced name the way Rails' ``underscore`` does.

    Examples::

        underscore("HomePage")       -> "home_page"
        underscore("Admin::Welcome") -> "admin/welcome"
        underscore("  Landing-Page") -> "landing_page"
    """
    word = name.strip().replace("::", "/")
    word = re.sub(r"([A-Z\d]+)([A-Z][a-z])", r"\1_\2", word)
    word = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", word)
    word = word.replace("-", "_")
    return word.lower()


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0.0s"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


PHASE_NAMES: dict[int, str] = {
    1: "GENERATE",
    2: "POSTPROCESS",
}

PHASE_COLORS: dict[int, str] = {
    1: "bright_cyan",
    2: "bright_green",
}


def print_phase_header(phase: int, name: str) -> None:
    """Print a full-width rule announcing a pipeline phase."""
    color = PHASE_COLORS.get(phase, "white")
    console.print()
    console.print(
        Rule(
            f"[bold {color}] Phase {phase}: {name.upper()} [/bold {color}]",
            style=color,
        )
    )
    console.print()


def print_action(verb: str, target: str, style: str = "green") -> None:
    """Print a right-aligned action verb followed by its target path."""
    console.print(f"[bold {style}]{verb:>12}[/bold {style}]  {target}")


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
