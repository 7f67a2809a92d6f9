# step_workflows/docker.py
from __future__ import annotations

from pathlib import Path

from ..process import run_command


# ---------------------------------------------------------------------
# Image naming
# ---------------------------------------------------------------------

def local_image_ref(namespace: str, service_name: str) -> str:
    """Deterministic local tag: <namespace>-<lowercased service>:local."""
    # docker repository names must be lowercase
    return f"{namespace}-{service_name.lower()}:local"


# ---------------------------------------------------------------------
# Docker CLI commands
# ---------------------------------------------------------------------

def build_image(service_dir: str | Path, descriptor: str | Path, tag: str) -> str:
    """
    Build `service_dir` with the given Dockerfile and tag the result.

    Returns:
        The tag, once the build succeeded.

    Raises:
        CommandError: If the build fails
    """
    run_command([
        "docker", "build",
        "-t", tag,
        "-f", str(descriptor),
        str(service_dir),
    ])
    return tag


def tag_image(source: str, target: str) -> None:
    run_command(["docker", "tag", source, target])


def push_image(ref: str) -> None:
    run_command(["docker", "push", ref])


def login(registry: str, username: str, password: str) -> None:
    """Log in to `registry`; the password goes over stdin, never argv."""
    run_command(
        ["docker", "login", "--username", username, "--password-stdin", registry],
        input=password,
    )
