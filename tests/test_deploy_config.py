"""Tests for the deployment config loader."""

import pytest

from gitrunner.deploy.config import DeploymentConfig, is_placeholder, load_config, substitute_env
from gitrunner.errors import ConfigError
from gitrunner.ui.console import Console, set_console


@pytest.fixture(autouse=True)
def quiet_console():
    set_console(Console())


class TestSubstituteEnv:
    def test_replaces_set_variables(self):
        text, unresolved = substitute_env("id: ${ACCOUNT}\nregion: ${REGION}", {"ACCOUNT": "123", "REGION": "eu-west-1"})

        assert text == "id: 123\nregion: eu-west-1"
        assert unresolved == []

    def test_unset_and_empty_are_left_verbatim(self):
        text, unresolved = substitute_env("a: ${MISSING}\nb: ${EMPTY}\nc: ${SET}", {"EMPTY": "", "SET": "x"})

        assert text == "a: ${MISSING}\nb: ${EMPTY}\nc: x"
        assert unresolved == ["EMPTY", "MISSING"]

    def test_only_braced_names_are_placeholders(self):
        text, _ = substitute_env("$HOME ${} ${with-dash} ${OK}", {"HOME": "/root", "OK": "yes"})
        assert text == "$HOME ${} ${with-dash} yes"

    @pytest.mark.parametrize(
        "raw",
        [
            "plain text",
            "${A} and ${B}",
            "${UNSET} stays, ${A} goes",
            "nested ${A}${B}${A}",
        ],
    )
    def test_substitution_is_idempotent(self, raw):
        env = {"A": "alpha", "B": "beta"}
        once, _ = substitute_env(raw, env)
        twice, _ = substitute_env(once, env)
        assert once == twice

    @pytest.mark.parametrize(
        "env",
        [
            {"A": "${B}", "B": "x"},
            {"A": "pre-${B}-${C}", "B": "${C}", "C": "x"},
            {"A": "${MISSING}"},
            {"A": "${B}", "B": "${A}"},
            {"A": "loop-${A}"},
        ],
    )
    def test_values_holding_placeholders_stay_idempotent(self, env):
        once, _ = substitute_env("id: ${A}", env)
        twice, _ = substitute_env(once, env)
        assert once == twice

    def test_values_are_expanded_fully(self):
        text, unresolved = substitute_env("id: ${A}", {"A": "${B}", "B": "x"})
        assert text == "id: x"
        assert unresolved == []

    def test_nested_unset_variable_is_reported(self):
        text, unresolved = substitute_env("id: ${A}", {"A": "acct-${MISSING}"})
        assert text == "id: acct-${MISSING}"
        assert unresolved == ["MISSING"]

    def test_self_referencing_value_is_left_verbatim(self):
        text, unresolved = substitute_env("id: ${A}", {"A": "loop-${A}"})
        assert text == "id: ${A}"
        assert unresolved == ["A"]

    def test_is_placeholder(self):
        assert is_placeholder("${AWS_ACCOUNT_ID}")
        assert not is_placeholder("123456789012")
        assert not is_placeholder("x${A}")


class TestLoadConfig:
    def test_loads_and_substitutes(self, deploy_yaml):
        config = load_config(deploy_yaml, env={"TEST_ACCOUNT_ID": "123456789012"})

        assert isinstance(config, DeploymentConfig)
        assert config.provider == "aws"
        assert config.registry.region == "eu-west-1"
        assert config.registry.repository_prefix == "shop"
        assert config.registry.cluster == "shop-cluster"
        assert config.registry.account_id == "123456789012"
        api = config.services["svc-api"]
        assert api.directory == "svc/api"
        assert api.task_definition == "shop-api"
        assert api.service_name == "shop-api-service"
        assert api.container_name == "api"

    def test_unresolved_placeholder_is_kept_and_warned(self, deploy_yaml, capsys):
        config = load_config(deploy_yaml, env={})

        assert config.registry.account_id == "${TEST_ACCOUNT_ID}"
        assert "TEST_ACCOUNT_ID" in capsys.readouterr().err

    def test_services_block_is_optional(self, tmp_path):
        path = tmp_path / "deploy.yml"
        path.write_text("aws:\n  region: us-east-1\n  ecrRepositoryPrefix: p\n  ecsCluster: c\n")

        config = load_config(path, env={})

        assert config.services == {}
        assert config.registry.account_id == ""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc:
            load_config(tmp_path / "nope.yml", env={})
        assert exc.value.kind == "config"

    @pytest.mark.parametrize(
        "content",
        [
            "aws: [unclosed",
            "- just\n- a list\n",
            "",
            "provider: aws\n",
            "aws:\n  region: us-east-1\n",
            "aws:\n  region: r\n  ecrRepositoryPrefix: p\n  ecsCluster: c\nservices:\n  api:\n    directory: api\n",
        ],
    )
    def test_malformed_documents(self, tmp_path, content):
        path = tmp_path / "deploy.yml"
        path.write_text(content)

        with pytest.raises(ConfigError):
            load_config(path, env={})

    def test_unsupported_provider(self, tmp_path):
        path = tmp_path / "deploy.yml"
        path.write_text("provider: gcp\naws:\n  region: r\n  ecrRepositoryPrefix: p\n  ecsCluster: c\n")

        with pytest.raises(ConfigError) as exc:
            load_config(path, env={})
        assert "gcp" in exc.value.message
