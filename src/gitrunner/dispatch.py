# dispatch.py
from __future__ import annotations

import re
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Optional

from .model import BuildJob, JobRecord, JobResult, PushEvent
from .runner import run_job
from .settings import Settings
from .ui.console import get_console


Runner = Callable[[BuildJob, Settings, str], JobResult]

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def workdir_name(commit_ref: str) -> str:
    """Filesystem-safe directory name for a commit ref."""
    name = _UNSAFE.sub("_", commit_ref).strip("._")
    return name or "head"


class JobDispatcher:
    """
    Runs build jobs on a bounded worker pool, off the request path.

    Each commit gets its own working directory under settings.working_dir,
    and jobs that land on the same directory (re-delivery of one commit)
    run one after another instead of racing each other.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        runner: Runner = run_job,
        max_workers: Optional[int] = None,
        history_limit: int = 200,
    ):
        self.settings = settings
        self._runner = runner
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers or settings.max_workers,
            thread_name_prefix="gitrunner-job",
        )
        self._history_limit = history_limit
        self._records: Dict[str, JobRecord] = {}
        # path -> [lock, number of jobs holding or waiting on it]
        self._dir_locks: Dict[Path, list] = {}
        self._lock = threading.Lock()

    # -------------------- Jobs --------------------

    def build_job(self, event: PushEvent) -> BuildJob:
        return BuildJob(
            clone_url=event.clone_url,
            commit_ref=event.commit_ref,
            working_dir=Path(self.settings.working_dir) / workdir_name(event.commit_ref),
            deploy_enabled=self.settings.deploy_enabled,
            deploy_config_path=self.settings.deploy_config_path,
        )

    def submit(self, event: PushEvent) -> str:
        """Queue a job for `event` and return its id without waiting."""
        job = self.build_job(event)
        job_id = uuid.uuid4().hex[:12]
        record = JobRecord(
            id=job_id,
            clone_url=job.clone_url,
            commit_ref=job.commit_ref,
            working_dir=str(job.working_dir),
            status="queued",
            created_at=now_utc(),
        )
        with self._lock:
            self._records[job_id] = record
            self._prune()
        self._pool.submit(self._execute, job_id, job)
        return job_id

    def get(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            record = self._records.get(job_id)
            return replace(record) if record else None

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)

    # -------------------- Internals --------------------

    def _prune(self) -> None:
        # dicts keep insertion order, so the first keys are the oldest jobs
        while len(self._records) > self._history_limit:
            oldest = next(iter(self._records))
            del self._records[oldest]

    @contextmanager
    def _dir_lock(self, path: Path):
        with self._lock:
            entry = self._dir_locks.setdefault(path, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._dir_locks[path]

    def _update(self, job_id: str, **changes) -> None:
        with self._lock:
            record = self._records.get(job_id)
            if record is None:
                return
            for key, value in changes.items():
                setattr(record, key, value)

    def _execute(self, job_id: str, job: BuildJob) -> None:
        with self._dir_lock(job.working_dir):
            self._update(job_id, status="running")
            try:
                result = self._runner(job, self.settings, job_id)
            except Exception as e:
                # worker threads have no caller; record and report instead of dying silently
                get_console().print_exception(e)
                self._update(job_id, status="failed", error=str(e), finished_at=now_utc())
                return

        self._update(
            job_id,
            status=result.status,
            error=result.error,
            images=dict(result.images),
            published=dict(result.published),
            finished_at=now_utc(),
        )
