"""Console output formatting utilities for gitrunner."""

from __future__ import annotations

import sys
import threading
from typing import Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug
        # jobs run on worker threads; keep multi-line blocks together
        self._lock = threading.Lock()

    def _emit(self, lines: list[str], *, err: bool = False) -> None:
        stream = sys.stderr if err else sys.stdout
        with self._lock:
            for line in lines:
                print(line, file=stream)

    def print_server_started(
        self,
        host: str,
        port: int,
        working_dir: str,
        deploy_enabled: bool,
        deploy_config: Optional[str],
    ) -> None:
        """Print server start information."""
        lines = [
            "",
            "SERVER STARTED",
            f"Listening: {host}:{port}",
            f"Working dir: {working_dir}",
            f"Deploy: {'enabled' if deploy_enabled else 'disabled'}",
        ]
        if deploy_enabled and deploy_config:
            lines.append(f"Deploy config: {deploy_config}")
        self._emit(lines + [""])

    def print_webhook(self, event_type: str) -> None:
        """Print a received webhook delivery."""
        self._emit([f"WEBHOOK: {event_type or '<none>'}"])

    def print_job_started(self, job_id: str, clone_url: str, commit_ref: str) -> None:
        """Print job start information."""
        self._emit([
            "",
            f"JOB STARTED: {job_id}",
            f"Repository: {clone_url}",
            f"Commit: {commit_ref}",
        ])

    def print_stage(self, job_id: str, stage: str) -> None:
        """Print pipeline stage start."""
        self._emit([f"[{job_id}] ▶ {stage}"])

    def print_service_built(self, job_id: str, service: str, image: str) -> None:
        self._emit([f"[{job_id}] built {service} -> {image}"])

    def print_service_published(self, job_id: str, service: str, remote: str) -> None:
        self._emit([f"[{job_id}] pushed {service} -> {remote}"])

    def print_service_deployed(self, job_id: str, service: str, revision: str) -> None:
        self._emit([f"[{job_id}] deployed {service} ({revision})"])

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
        hint: Optional[str] = None,
    ) -> None:
        """
        Print failure message.

        Args:
            name: Job id, or "job-id/service" for per-service failures
            reason: Failure reason/error message
            exit_code: Optional exit code
            hint: Optional hint for user
        """
        lines = [f"FAILED: {name}"]
        if exit_code is not None:
            lines.append(f"Exit code: {exit_code}")
        if hint:
            lines.append(f"Hint: {hint}")
        if self.debug:
            lines.append(f"Error details: {reason}")
        else:
            # first line only outside debug mode
            error_line = reason.split("\n")[0] if reason else "Unknown error"
            lines.append(f"Error: {error_line}")
        self._emit(lines, err=True)

    def print_warning(self, message: str) -> None:
        """Print warning message."""
        self._emit([f"WARNING: {message}"], err=True)

    def print_job_complete(
        self,
        job_id: str,
        status: str,
        duration: Optional[float] = None,
        images: Optional[dict[str, str]] = None,
    ) -> None:
        """Print job completion summary."""
        lines = ["", f"JOB COMPLETE: {job_id}", f"Status: {status}"]
        if duration is not None:
            lines.append(f"Duration: {duration:.1f}s")
        for service, image in sorted((images or {}).items()):
            lines.append(f"  {service}: {image}")
        self._emit(lines)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        lines = [f"\nERROR: {title}", message]
        if details:
            lines.extend(f"  {detail}" for detail in details)
        if suggestion:
            lines.append(f"\n{suggestion}")
        self._emit(lines, err=True)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            with self._lock:
                traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            self._emit([f"Error: {exc}"], err=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._emit([message])

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            self._emit([f"[DEBUG] {message}"], err=True)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
