# discover.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List

from .errors import CommandError
from .model import DiscoveredService
from .step_workflows import docker
from .ui.console import get_console


ROOT_SERVICE = "root"
NAME_JOINER = "-"
VCS_DIRS = frozenset({".git", ".hg", ".svn"})


def service_name(root: Path, directory: Path) -> str:
    """
    Name a service after its directory relative to `root`.

    "svc/api" -> "svc-api"; the repository root itself -> "root".
    """
    rel = directory.relative_to(root)
    if not rel.parts:
        return ROOT_SERVICE
    return NAME_JOINER.join(rel.parts)


def discover_services(root: str | Path, descriptor: str = "Dockerfile") -> List[DiscoveredService]:
    """
    Walk `root` and return every directory that contains `descriptor`.

    Version-control metadata directories are pruned, never descended into.
    Traversal is sorted so the result order is deterministic.
    """
    root_p = Path(root).resolve()
    found: List[DiscoveredService] = []

    for dirpath, dirnames, filenames in os.walk(root_p):
        # pruning in place stops os.walk from descending
        dirnames[:] = sorted(d for d in dirnames if d not in VCS_DIRS)
        if descriptor in filenames:
            directory = Path(dirpath)
            found.append(
                DiscoveredService(
                    name=service_name(root_p, directory),
                    directory=directory,
                    descriptor_path=directory / descriptor,
                )
            )

    return found


def build_services(
    root: str | Path,
    *,
    namespace: str = "project",
    descriptor: str = "Dockerfile",
    job_id: str = "local",
) -> Dict[str, str]:
    """
    Discover services under `root` and build one image per service.

    A failed build is reported and skipped; it never stops the walk or the
    remaining builds. Service names and local tags stay unique: a service
    whose name or tag was already taken earlier in the walk is reported and
    not built.

    Returns:
        {service_name: local_image_ref} for successful builds only
    """
    console = get_console()
    services = discover_services(root, descriptor=descriptor)

    if not services:
        console.print_info(f"[{job_id}] no {descriptor} found in repository")
        return {}

    built: Dict[str, str] = {}
    by_name: Dict[str, DiscoveredService] = {}
    by_tag: Dict[str, DiscoveredService] = {}
    for svc in services:
        tag = docker.local_image_ref(namespace, svc.name)
        taken = by_name.get(svc.name) or by_tag.get(tag)
        if taken is not None:
            console.print_failure(
                f"{job_id}/{svc.name}",
                f"{svc.directory} collides with {taken.directory} (service {taken.name}, image {tag})",
                hint="Rename one of the directories so each service gets its own image",
            )
            continue
        by_name[svc.name] = by_tag[tag] = svc

        console.print_stage(job_id, f"build {svc.name} ({svc.directory})")
        try:
            svc.image_ref = docker.build_image(svc.directory, svc.descriptor_path, tag)
        except CommandError as e:
            console.print_failure(f"{job_id}/{svc.name}", str(e), exit_code=e.exit_code)
            continue
        built[svc.name] = svc.image_ref
        console.print_service_built(job_id, svc.name, svc.image_ref)

    console.print_info(f"[{job_id}] built {len(built)} of {len(services)} service(s)")
    return built
