from .model import PushEvent, BuildJob, DiscoveredService, JobResult
from .runner import run_job
from .settings import Settings

__all__ = ["PushEvent", "BuildJob", "DiscoveredService", "JobResult", "run_job", "Settings"]
