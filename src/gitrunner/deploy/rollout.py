# deploy/rollout.py
from __future__ import annotations

import copy
from typing import Any, Dict, Mapping

from ..errors import CommandError, RolloutError
from ..ui.console import get_console
from . import aws
from .config import DeploymentConfig, ServiceConfig


# Returned by describe-task-definition but rejected by register-task-definition.
READ_ONLY_FIELDS = (
    "taskDefinitionArn",
    "revision",
    "status",
    "requiresAttributes",
    "compatibilities",
    "registeredAt",
    "registeredBy",
    "deregisteredAt",
)


class MissingContainer(Exception):
    pass


def patch_task_definition(definition: Mapping[str, Any], container_name: str, image: str) -> Dict[str, Any]:
    """
    Copy of `definition` with only `container_name`'s image replaced and the
    read-only fields dropped, ready to register as a new revision.
    """
    patched = {k: copy.deepcopy(v) for k, v in definition.items() if k not in READ_ONLY_FIELDS}

    containers = patched.get("containerDefinitions") or []
    for container in containers:
        if container.get("name") == container_name:
            container["image"] = image
            return patched

    names = ", ".join(c.get("name", "?") for c in containers) or "none"
    raise MissingContainer(f"container {container_name!r} not in task definition (found: {names})")


def rollout_service(image: str, svc: ServiceConfig, config: DeploymentConfig) -> str:
    """
    Register a revision of the service's task definition that runs `image`
    and force ECS to redeploy the service onto it.

    Returns:
        ARN of the new task definition revision.
    """
    region = config.registry.region
    current = aws.describe_task_definition(svc.task_definition, region)
    patched = patch_task_definition(current, svc.container_name, image)
    revision = aws.register_task_definition(patched, region)
    aws.update_service(config.registry.cluster, svc.service_name, revision, region)
    return revision


def rollout(remote_images: Mapping[str, str], config: DeploymentConfig, *, job_id: str = "local") -> None:
    """
    Roll every published image out to its ECS service.

    Services without a deployment config entry are skipped with a warning.
    A failing service does not stop the others.

    Raises:
        RolloutError: After all services were attempted, if any failed
    """
    console = get_console()
    failed: Dict[str, str] = {}

    for name in sorted(remote_images):
        svc = config.services.get(name)
        if svc is None:
            console.print_warning(f"[{job_id}] skipping rollout of {name}: no deployment config entry")
            continue

        console.print_stage(job_id, f"rollout {name} -> {svc.service_name}")
        try:
            revision = rollout_service(remote_images[name], svc, config)
        except (CommandError, MissingContainer, KeyError, ValueError) as e:
            failed[name] = str(e).split("\n")[0]
            console.print_failure(f"{job_id}/{name}", str(e))
            continue
        console.print_service_deployed(job_id, name, revision)

    if failed:
        raise RolloutError(failed)
