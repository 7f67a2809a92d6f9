# errors.py
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class PipelineError(Exception):
    """
    Structured pipeline error with enough context for:
      - clean console output
      - the job status record
      - debugging without full tracebacks
    """
    kind: str
    message: str
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


class SignatureError(PipelineError):
    def __init__(self, message: str):
        super().__init__(kind="signature", message=message)


class ParseError(PipelineError):
    def __init__(self, message: str, cause: str = ""):
        details = {"cause": cause} if cause else {}
        super().__init__(kind="parse", message=message, details=details)


class FetchError(PipelineError):
    """Clone or checkout failed. `stage` is "clone" or "checkout"."""

    def __init__(self, stage: str, message: str, cause: str = ""):
        super().__init__(kind="fetch", message=message, details={"stage": stage, "cause": cause})
        self.stage = stage


class ConfigError(PipelineError):
    def __init__(self, message: str, path: str | None = None, cause: str = ""):
        details = {}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = cause
        super().__init__(kind="config", message=message, details=details)


class PublishError(PipelineError):
    def __init__(self, message: str, service: str | None = None, cause: str = ""):
        details = {}
        if service:
            details["service"] = service
        if cause:
            details["cause"] = cause
        super().__init__(kind="publish", message=message, details=details)
        self.service = service


class RolloutError(PipelineError):
    """One or more services failed to roll out; `failed` maps service -> reason."""

    def __init__(self, failed: dict[str, str]):
        names = ", ".join(sorted(failed))
        super().__init__(
            kind="rollout",
            message=f"rollout failed for {len(failed)} service(s): {names}",
            details=dict(failed),
        )
        self.failed = dict(failed)


@dataclass
class CommandError(Exception):
    cmd: list[str]
    exit_code: int
    output: str = ""

    def __str__(self) -> str:
        text = f"command failed (exit={self.exit_code}): {' '.join(self.cmd)}"
        if self.output:
            text += f"\n{self.output.strip()}"
        return text
