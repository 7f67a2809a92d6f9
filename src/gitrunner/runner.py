# runner.py
from __future__ import annotations

import shutil
import time
from typing import Dict

from .deploy.config import DeploymentConfig, load_config
from .deploy.publisher import publish
from .deploy.rollout import rollout
from .discover import build_services
from .errors import ConfigError, PipelineError
from .git_facts.git import clone_and_checkout
from .model import BuildJob, JobResult
from .settings import Settings
from .ui.console import get_console

# push ---> webhook ---> clone ---> build ---> publish ---> rollout


def _load_deploy_config(job: BuildJob, job_id: str) -> DeploymentConfig:
    if job.deploy_config_path is None:
        raise ConfigError("deployment enabled but no deployment config path was given")
    get_console().print_stage(job_id, f"load deploy config ({job.deploy_config_path})")
    return load_config(job.deploy_config_path)


def _cleanup(job: BuildJob, job_id: str) -> None:
    if not job.working_dir.exists():
        return
    try:
        shutil.rmtree(job.working_dir)
    except OSError as e:
        get_console().print_warning(f"[{job_id}] could not remove {job.working_dir}: {e}")


def run_job(job: BuildJob, settings: Settings, job_id: str = "local") -> JobResult:
    """
    Run one job: fetch -> build -> (optional) publish -> rollout, in order.

    Pipeline errors end the job and are logged; they are returned in the
    result instead of raised because a dispatched job has no caller.
    """
    console = get_console()
    console.print_job_started(job_id, job.clone_url, job.commit_ref)
    start = time.time()

    images: Dict[str, str] = {}
    published: Dict[str, str] = {}
    try:
        console.print_stage(job_id, f"fetch {job.commit_ref}")
        clone_and_checkout(job.clone_url, job.commit_ref, job.working_dir)

        console.print_stage(job_id, "discover and build")
        images = build_services(
            job.working_dir,
            namespace=settings.image_namespace,
            descriptor=settings.build_descriptor,
            job_id=job_id,
        )

        if job.deploy_enabled:
            config = _load_deploy_config(job, job_id)
            if images:
                console.print_stage(job_id, f"publish {len(images)} image(s)")
                published = publish(images, config, job_id=job_id)
                console.print_stage(job_id, "rollout")
                rollout(published, config, job_id=job_id)
            else:
                console.print_info(f"[{job_id}] nothing was built, skipping publish and rollout")
    except PipelineError as e:
        console.print_failure(job_id, str(e))
        console.print_job_complete(job_id, "failed", time.time() - start)
        return JobResult(status="failed", images=images, published=published, error=str(e))
    finally:
        if not settings.keep_workdir:
            _cleanup(job, job_id)

    console.print_job_complete(job_id, "ok", time.time() - start, images=published or images)
    return JobResult(status="ok", images=images, published=published)
