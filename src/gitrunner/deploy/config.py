# deploy/config.py
from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ConfigError
from ..ui.console import get_console


SUPPORTED_PROVIDERS = ("aws",)

PLACEHOLDER = re.compile(r"\$\{([A-Za-z0-9_]+)\}")


# -------------------- Schema --------------------

class ServiceConfig(BaseModel):
    """Where one discovered service is deployed."""
    model_config = ConfigDict(populate_by_name=True)

    directory: str = ""
    task_definition: str = Field(alias="taskDefinition")
    service_name: str = Field(alias="serviceName")
    container_name: str = Field(alias="containerName")


class RegistryConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    region: str
    repository_prefix: str = Field(alias="ecrRepositoryPrefix")
    cluster: str = Field(alias="ecsCluster")
    account_id: str = Field(default="", alias="accountId")


class DeploymentConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: str = "aws"
    registry: RegistryConfig = Field(alias="aws")
    services: Dict[str, ServiceConfig] = Field(default_factory=dict)


# -------------------- Loading --------------------

class _Cycle(Exception):
    """A variable's value refers back to itself."""


def substitute_env(text: str, env: Mapping[str, str] | None = None) -> Tuple[str, List[str]]:
    """
    Replace ${NAME} tokens with values from `env`.

    Values are expanded until no set variable is left, so substituting the
    result again changes nothing. Tokens whose variable is unset or empty are
    left verbatim, and so is a token whose value refers back to itself.

    Returns:
        (substituted text, sorted names that stayed unresolved)
    """
    env = os.environ if env is None else env
    unresolved: set[str] = set()

    def _expand(name: str, seen: frozenset, missing: set) -> Optional[str]:
        if name in seen:
            raise _Cycle(name)
        value = env.get(name)
        if not value:
            return None
        nested = seen | {name}

        def _inner(match: re.Match) -> str:
            expanded = _expand(match.group(1), nested, missing)
            if expanded is None:
                missing.add(match.group(1))
                return match.group(0)
            return expanded

        return PLACEHOLDER.sub(_inner, value)

    def _sub(match: re.Match) -> str:
        name = match.group(1)
        missing: set[str] = set()
        try:
            value = _expand(name, frozenset(), missing)
        except _Cycle:
            value = None
        if value is None:
            unresolved.add(name)
            return match.group(0)
        unresolved.update(missing)
        return value

    return PLACEHOLDER.sub(_sub, text), sorted(unresolved)


def is_placeholder(value: str) -> bool:
    """True if `value` is nothing but an unresolved ${NAME} token."""
    return bool(PLACEHOLDER.fullmatch(value.strip()))


def load_config(path: str | Path, env: Mapping[str, str] | None = None) -> DeploymentConfig:
    """
    Load a deployment config file.

    The raw text has its ${NAME} placeholders substituted from `env` before
    it is parsed as YAML. Unresolved placeholders stay in place and are
    reported as warnings.

    Raises:
        ConfigError: unreadable file, invalid YAML, schema violation or
                     unsupported provider
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError("could not read deployment config", path=str(path), cause=str(e)) from e

    text, unresolved = substitute_env(raw, env)
    console = get_console()
    for name in unresolved:
        console.print_warning(f"{path}: ${{{name}}} is not set, left as-is")

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError("invalid YAML in deployment config", path=str(path), cause=str(e)) from e

    if not isinstance(data, Mapping):
        raise ConfigError("deployment config must be a YAML mapping", path=str(path))

    try:
        config = DeploymentConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError("invalid deployment config", path=str(path), cause=str(e)) from e

    if config.provider not in SUPPORTED_PROVIDERS:
        raise ConfigError(
            f"unsupported provider {config.provider!r} (supported: {', '.join(SUPPORTED_PROVIDERS)})",
            path=str(path),
        )

    return config
