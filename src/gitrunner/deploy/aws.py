# deploy/aws.py
# Thin wrapper around the AWS CLI for the ECR and ECS calls the pipeline makes.

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from ..process import run_command


def _aws(args: List[str], region: str, *, input: Optional[str] = None) -> str:
    return run_command(["aws", *args, "--region", region], input=input)


def _aws_json(args: List[str], region: str) -> Dict[str, Any]:
    out = _aws([*args, "--output", "json"], region)
    return json.loads(out) if out.strip() else {}


def registry_url(account_id: str, region: str) -> str:
    return f"{account_id}.dkr.ecr.{region}.amazonaws.com"


def ecr_login_password(region: str) -> str:
    return _aws(["ecr", "get-login-password"], region).strip()


def describe_task_definition(name: str, region: str) -> Dict[str, Any]:
    """Return the current (latest ACTIVE) revision of task definition `name`."""
    return _aws_json(["ecs", "describe-task-definition", "--task-definition", name], region)["taskDefinition"]


def register_task_definition(definition: Dict[str, Any], region: str) -> str:
    """Register `definition` as a new revision and return its ARN."""
    out = _aws_json(
        ["ecs", "register-task-definition", "--cli-input-json", json.dumps(definition)],
        region,
    )
    return out["taskDefinition"]["taskDefinitionArn"]


def update_service(cluster: str, service: str, task_definition: str, region: str) -> None:
    _aws(
        [
            "ecs", "update-service",
            "--cluster", cluster,
            "--service", service,
            "--task-definition", task_definition,
            "--force-new-deployment",
        ],
        region,
    )
