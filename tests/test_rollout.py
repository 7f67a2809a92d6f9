"""Tests for rolling published images out to ECS."""

import json

import pytest

from gitrunner.deploy import aws, rollout
from gitrunner.deploy.config import load_config
from gitrunner.errors import CommandError, RolloutError

TASK_DEF = {
    "taskDefinitionArn": "arn:aws:ecs:eu-west-1:123:task-definition/shop-api:7",
    "family": "shop-api",
    "revision": 7,
    "status": "ACTIVE",
    "requiresAttributes": [{"name": "com.amazonaws.ecs.capability.ecr-auth"}],
    "compatibilities": ["EC2", "FARGATE"],
    "registeredAt": "2026-01-01T00:00:00Z",
    "registeredBy": "arn:aws:iam::123:user/ci",
    "cpu": "256",
    "memory": "512",
    "containerDefinitions": [
        {"name": "api", "image": "old/api:1", "essential": True},
        {"name": "sidecar", "image": "envoy:1.29", "essential": False},
    ],
}


@pytest.fixture
def config(deploy_yaml):
    return load_config(deploy_yaml, env={"TEST_ACCOUNT_ID": "123"})


class FakeECS:
    def __init__(self, fail: dict[str, str] | None = None):
        self.fail = fail or {}
        self.registered = []
        self.updated = []

    def describe(self, name, region):
        if self.fail.get(name) == "describe":
            raise CommandError(cmd=["aws", "ecs", "describe-task-definition"], exit_code=254, output="not found")
        return json.loads(json.dumps({**TASK_DEF, "family": name}))

    def register(self, definition, region):
        if self.fail.get(definition["family"]) == "register":
            raise CommandError(cmd=["aws", "ecs", "register-task-definition"], exit_code=254, output="invalid")
        self.registered.append(definition)
        return f"arn:aws:ecs:{region}:123:task-definition/{definition['family']}:8"

    def update(self, cluster, service, task_definition, region):
        self.updated.append((cluster, service, task_definition))


@pytest.fixture
def ecs(monkeypatch):
    fake = FakeECS()
    monkeypatch.setattr(aws, "describe_task_definition", fake.describe)
    monkeypatch.setattr(aws, "register_task_definition", fake.register)
    monkeypatch.setattr(aws, "update_service", fake.update)
    return fake


class TestPatchTaskDefinition:
    def test_only_named_container_changes(self):
        patched = rollout.patch_task_definition(TASK_DEF, "api", "new/api:2")

        images = {c["name"]: c["image"] for c in patched["containerDefinitions"]}
        assert images == {"api": "new/api:2", "sidecar": "envoy:1.29"}
        assert patched["cpu"] == "256"
        assert TASK_DEF["containerDefinitions"][0]["image"] == "old/api:1"

    def test_read_only_fields_are_dropped(self):
        patched = rollout.patch_task_definition(TASK_DEF, "api", "new/api:2")

        for field in rollout.READ_ONLY_FIELDS:
            assert field not in patched
        assert patched["family"] == "shop-api"

    def test_unknown_container(self):
        with pytest.raises(rollout.MissingContainer):
            rollout.patch_task_definition(TASK_DEF, "web", "new/web:2")


class TestRollout:
    def test_registers_and_redeploys_each_service(self, config, ecs):
        rollout.rollout({"svc-api": "reg/shop/shop-api-service:t1"}, config)

        [definition] = ecs.registered
        assert definition["family"] == "shop-api"
        assert definition["containerDefinitions"][0]["image"] == "reg/shop/shop-api-service:t1"
        assert ecs.updated == [
            ("shop-cluster", "shop-api-service", "arn:aws:ecs:eu-west-1:123:task-definition/shop-api:8"),
        ]

    def test_service_without_config_is_skipped(self, config, ecs, capsys):
        rollout.rollout({"worker": "reg/shop/shop-worker-service:t1"}, config)

        assert ecs.registered == []
        assert ecs.updated == []
        assert "worker" in capsys.readouterr().err

    def test_failure_is_isolated_per_service(self, config, monkeypatch):
        fake = FakeECS(fail={"shop-api": "describe"})
        monkeypatch.setattr(aws, "describe_task_definition", fake.describe)
        monkeypatch.setattr(aws, "register_task_definition", fake.register)
        monkeypatch.setattr(aws, "update_service", fake.update)

        with pytest.raises(RolloutError) as exc:
            rollout.rollout(
                {"svc-api": "reg/shop/shop-api-service:t1", "root": "reg/shop/shop-web-service:t1"},
                config,
            )

        assert set(exc.value.failed) == {"svc-api"}
        assert [u[1] for u in fake.updated] == ["shop-web-service"]

    def test_register_failure_skips_redeploy(self, config, monkeypatch):
        fake = FakeECS(fail={"shop-web": "register"})
        monkeypatch.setattr(aws, "describe_task_definition", fake.describe)
        monkeypatch.setattr(aws, "register_task_definition", fake.register)
        monkeypatch.setattr(aws, "update_service", fake.update)

        with pytest.raises(RolloutError) as exc:
            rollout.rollout({"root": "reg/shop/shop-web-service:t1"}, config)

        assert list(exc.value.failed) == ["root"]
        assert fake.updated == []


def test_aws_register_command(monkeypatch):
    seen = []

    def fake_run(cmd, **kw):
        seen.append(cmd)
        return json.dumps({"taskDefinition": {"taskDefinitionArn": "arn:new"}})

    monkeypatch.setattr(aws, "run_command", fake_run)

    arn = aws.register_task_definition({"family": "shop-api"}, "eu-west-1")

    assert arn == "arn:new"
    assert seen == [[
        "aws", "ecs", "register-task-definition",
        "--cli-input-json", '{"family": "shop-api"}',
        "--output", "json",
        "--region", "eu-west-1",
    ]]
