"""Pytest configuration and fixtures."""

import json
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from gitrunner.dispatch import JobDispatcher
from gitrunner.model import JobResult
from gitrunner.settings import Settings
from gitrunner.webhook.main import create_app

SECRET = "s3cret"


class RecordingRunner:
    """Stands in for run_job; remembers every job it was handed."""

    def __init__(self, result: JobResult | None = None):
        self.calls = []
        self.result = result or JobResult(status="ok", images={"root": "project-root:local"})

    def __call__(self, job, settings, job_id):
        self.calls.append((job, job_id))
        return self.result


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(webhook_secret=SECRET, working_dir=tmp_path / "work")


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def dispatcher(settings: Settings, runner: RecordingRunner):
    d = JobDispatcher(settings, runner=runner, max_workers=1)
    yield d
    d.shutdown(wait=True)


@pytest.fixture
async def client(settings: Settings, dispatcher: JobDispatcher) -> AsyncClient:
    """Async test client over the webhook app."""
    app = create_app(settings, dispatcher=dispatcher)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def push_body() -> bytes:
    """A trimmed-down push event as a provider would send it."""
    return json.dumps({
        "ref": "refs/heads/main",
        "before": "0000000000000000000000000000000000000000",
        "after": "abc123",
        "repository": {
            "full_name": "example/repo",
            "clone_url": "https://example/repo.git",
        },
        "pusher": {"name": "octocat"},
    }).encode("utf-8")


@pytest.fixture
def deploy_yaml(tmp_path: Path) -> Path:
    path = tmp_path / "deploy.yml"
    path.write_text(
        """\
provider: aws
aws:
  region: eu-west-1
  ecrRepositoryPrefix: shop
  ecsCluster: shop-cluster
  accountId: ${TEST_ACCOUNT_ID}
services:
  svc-api:
    directory: svc/api
    taskDefinition: shop-api
    serviceName: shop-api-service
    containerName: api
  root:
    directory: .
    taskDefinition: shop-web
    serviceName: shop-web-service
    containerName: web
""",
        encoding="utf-8",
    )
    return path
