# settings.py
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional, Tuple


# Searched (in order) when deployment is enabled without an explicit config path.
DEPLOY_CONFIG_CANDIDATES = (
    "deploy.yml",
    "deploy.yaml",
    ".deploy/config.yml",
    ".deploy/config.yaml",
    "config/deploy.yml",
    "config/deploy.yaml",
    ".github/workflows/deploy-config.yml",
)


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, built once at startup and passed explicitly."""
    host: str = "0.0.0.0"
    port: int = 8080
    working_dir: Path = Path("/tmp/build-job")
    webhook_secret: str = ""
    allow_unsigned: bool = False
    deploy_enabled: bool = False
    deploy_config_path: Optional[Path] = None
    image_namespace: str = "project"
    build_descriptor: str = "Dockerfile"
    trigger_event: str = "push"
    ack_events: Tuple[str, ...] = ("ping",)
    max_workers: int = 2
    keep_workdir: bool = False

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if env is None else env
        config_path = env.get("DEPLOY_CONFIG") or None
        return cls(
            host=env.get("HOST", "0.0.0.0"),
            port=int(env.get("PORT", "8080")),
            working_dir=Path(env.get("WORKING_DIR", "/tmp/build-job")),
            webhook_secret=env.get("WEBHOOK_SECRET", ""),
            allow_unsigned=_flag(env.get("ALLOW_UNSIGNED_WEBHOOKS")),
            # only the literal "true" enables deployment, as documented for ENABLE_ECS_DEPLOY
            deploy_enabled=env.get("ENABLE_ECS_DEPLOY", "") == "true",
            deploy_config_path=Path(config_path) if config_path else None,
            image_namespace=env.get("IMAGE_NAMESPACE", "project"),
            trigger_event=env.get("TRIGGER_EVENT", "push"),
            max_workers=int(env.get("MAX_CONCURRENT_JOBS", "2")),
            keep_workdir=_flag(env.get("KEEP_WORKDIR")),
        )

    def with_overrides(self, **changes) -> "Settings":
        """Copy with the non-None values in `changes` applied (CLI flags)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def find_deploy_config(base: str | Path = ".") -> Optional[Path]:
    """
    Return the first existing deployment config under `base`, or None.

    Args:
        base: Directory the candidate paths are resolved against
    """
    root = Path(base)
    for candidate in DEPLOY_CONFIG_CANDIDATES:
        path = root / candidate
        if path.is_file():
            return path
    return None
