# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional


@dataclass(frozen=True)
class PushEvent:
    """The two fields of a push notification a build needs."""
    clone_url: str
    commit_ref: str


@dataclass(frozen=True)
class BuildJob:
    """
    One accepted webhook delivery turned into work.

    The working directory belongs to this job alone: it is wiped before
    the clone and (unless the settings keep it) after the job finishes.
    """
    clone_url: str
    commit_ref: str
    working_dir: Path
    deploy_enabled: bool = False
    deploy_config_path: Optional[Path] = None


@dataclass
class DiscoveredService:
    """A directory holding a build descriptor."""
    name: str
    directory: Path
    descriptor_path: Path
    image_ref: Optional[str] = None  # set once the build succeeds


@dataclass
class JobResult:
    """Outcome of running one BuildJob."""
    status: str  # "ok" | "failed"
    images: Dict[str, str] = field(default_factory=dict)
    published: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class JobRecord:
    """Dispatcher-side view of a job, served by GET /jobs/{id}."""
    id: str
    clone_url: str
    commit_ref: str
    working_dir: str
    status: str  # queued | running | ok | failed
    created_at: datetime
    finished_at: Optional[datetime] = None
    error: Optional[str] = None
    images: Dict[str, str] = field(default_factory=dict)
    published: Dict[str, str] = field(default_factory=dict)
