# process.py
# Single entry point for running external tools (git, docker, aws).
# Tool wrappers build on run_command so failures always surface as CommandError.

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Optional

from .errors import CommandError
from .ui.console import get_console


TOOL_HINTS = {
    "git": "Install Git or fix PATH.",
    "docker": "Install Docker and ensure the daemon is running.",
    "aws": "Install the AWS CLI v2 or fix PATH.",
}

# keep the tail of tool output; docker builds can be very chatty
OUTPUT_TAIL = 4000


def run_command(
    cmd: List[str],
    *,
    cwd: str | Path | None = None,
    input: Optional[str] = None,
) -> str:
    """
    Run a command and return its stdout.

    Args:
        cmd: Program and arguments (never passed through a shell)
        cwd: Optional working directory
        input: Optional text written to the process stdin

    Returns:
        Captured stdout as text.

    Raises:
        CommandError: If the program is missing or exits non-zero
    """
    where = f" (in {cwd})" if cwd is not None else ""
    get_console().print_debug(f"$ {' '.join(cmd)}{where}")
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd is not None else None,
            input=input,
            text=True,
            capture_output=True,
        )
    except FileNotFoundError:
        hint = TOOL_HINTS.get(cmd[0], "Install it or fix PATH.")
        raise CommandError(cmd=list(cmd), exit_code=127, output=f"{cmd[0]}: command not found. {hint}")

    if proc.returncode != 0:
        output = (proc.stdout or "") + (proc.stderr or "")
        raise CommandError(cmd=list(cmd), exit_code=proc.returncode, output=output[-OUTPUT_TAIL:])

    return proc.stdout
