# deploy/publisher.py
from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional

from ..errors import CommandError, PublishError
from ..step_workflows import docker
from ..ui.console import get_console
from . import aws
from .config import DeploymentConfig, ServiceConfig, is_placeholder


REQUIRED_CREDENTIALS = ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY")


def run_tag(now: Optional[datetime] = None) -> str:
    """One tag shared by every image of a publish run."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y%m%d-%H%M%S")


def resolve_account_id(config: DeploymentConfig, env: Mapping[str, str]) -> str:
    account_id = config.registry.account_id
    if not account_id or is_placeholder(account_id):
        account_id = env.get("AWS_ACCOUNT_ID", "")
    return account_id


def resolve_service(name: str, config: DeploymentConfig) -> ServiceConfig:
    """
    Deployment settings for `name`, or defaults derived from the repository
    prefix when the config has no entry. Defaults are not written back into
    `config.services`.
    """
    svc = config.services.get(name)
    if svc is not None:
        return svc
    prefix = config.registry.repository_prefix
    return ServiceConfig(
        directory=name,
        task_definition=f"{prefix}-{name}",
        service_name=f"{prefix}-{name}-service",
        container_name=name,
    )


def login(config: DeploymentConfig, env: Mapping[str, str] | None = None) -> str:
    """
    Authenticate docker against the ECR registry.

    Returns:
        Registry host, e.g. 123456789012.dkr.ecr.eu-west-1.amazonaws.com

    Raises:
        PublishError: Missing credentials/account id or a failed login
    """
    env = os.environ if env is None else env
    missing = [k for k in REQUIRED_CREDENTIALS if not env.get(k)]
    if missing:
        raise PublishError(f"AWS credentials not found in environment: {', '.join(missing)}")

    account_id = resolve_account_id(config, env)
    if not account_id:
        raise PublishError("AWS account id not specified (set aws.accountId or AWS_ACCOUNT_ID)")

    region = config.registry.region
    registry = aws.registry_url(account_id, region)
    try:
        password = aws.ecr_login_password(region)
        docker.login(registry, "AWS", password)
    except CommandError as e:
        raise PublishError(f"login to {registry} failed", cause=str(e)) from e

    return registry


def publish(
    images: Mapping[str, str],
    config: DeploymentConfig,
    *,
    env: Mapping[str, str] | None = None,
    tag: Optional[str] = None,
    job_id: str = "local",
) -> Dict[str, str]:
    """
    Tag and push every built image to the registry.

    All images of one run share the same tag. Unlike discovery, a single
    tag/push failure aborts the whole publish: rollout needs every target.
    The floating `latest` pointer is best effort.

    Args:
        images: {service_name: local_image_ref}
        config: Loaded deployment config
        env: Environment holding the AWS credentials (default os.environ)
        tag: Run tag override (default: UTC timestamp)

    Returns:
        {service_name: remote_image_ref}

    Raises:
        PublishError: On login failure or the first failed tag/push
    """
    console = get_console()
    registry = login(config, env)
    tag = tag or run_tag()
    prefix = config.registry.repository_prefix

    published: Dict[str, str] = {}
    for name in sorted(images):
        local = images[name]
        if name not in config.services:
            console.print_warning(f"[{job_id}] no deployment config for {name}, using defaults")
        svc = resolve_service(name, config)

        repo_uri = f"{registry}/{prefix}/{svc.service_name}"
        remote = f"{repo_uri}:{tag}"

        try:
            docker.tag_image(local, remote)
            docker.push_image(remote)
        except CommandError as e:
            raise PublishError(f"failed to publish {name} as {remote}", service=name, cause=str(e)) from e

        latest = f"{repo_uri}:latest"
        try:
            docker.tag_image(local, latest)
            docker.push_image(latest)
        except CommandError as e:
            console.print_warning(f"[{job_id}] {latest} not updated ({e.exit_code}); continuing")

        published[name] = remote
        console.print_service_published(job_id, name, remote)

    return published
