# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import json
import pathlib
from typing import List, Optional

from loguru import logger

import sediment.plugin
from sediment.contributors.base import ComponentContribution, declared_artifact, make_contribution
from sediment.inventory import Artifact

PACKAGE_JSON = "package.json"
PACKAGE_LOCK = "package-lock.json"


def read_json(path: pathlib.Path) -> Optional[dict]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Unable to read {path}: {e}")
        return None
    return data if isinstance(data, dict) else None


def locked_packages(lock: dict) -> List[Artifact]:
    """Artifacts for the packages pinned by a package-lock.json (lockfile versions 1 to 3)."""
    artifacts = []
    packages = lock.get("packages")
    if isinstance(packages, dict):
        for location, info in packages.items():
            # "" is the root project itself
            if not location or not isinstance(info, dict):
                continue
            name = info.get("name") or location.rsplit("node_modules/", 1)[-1]
            artifacts.append(_locked_artifact(name, info))
        return artifacts
    dependencies = lock.get("dependencies")
    if isinstance(dependencies, dict):
        for name, info in dependencies.items():
            if isinstance(info, dict):
                artifacts.append(_locked_artifact(name, info))
    return artifacts


def _locked_artifact(name: str, info: dict) -> Artifact:
    attributes = {Artifact.URL: info.get("resolved")}
    if info.get("dev"):
        attributes[Artifact.COMMENT] = "development dependency"
    return declared_artifact(name, info.get("version"), "npm-module", "npm", attributes)


@sediment.plugin.hookimpl
def contribute_component(
    directory: pathlib.Path, relative_path: str
) -> Optional[ComponentContribution]:
    if not (directory / PACKAGE_JSON).is_file():
        return None
    package = read_json(directory / PACKAGE_JSON)
    if not package or not isinstance(package.get("name"), str):
        return None

    expansion = []
    if (directory / PACKAGE_LOCK).is_file():
        lock = read_json(directory / PACKAGE_LOCK)
        if lock:
            expansion = locked_packages(lock)

    logger.debug(f"npm package {package['name']} found in {relative_path or '.'}")
    return make_contribution(
        directory,
        anchor=PACKAGE_JSON,
        name=package["name"],
        version=package.get("version"),
        component_type="npm-module",
        source_type="npm",
        excludes=("node_modules/**",),
        expansion=expansion,
    )


@sediment.plugin.hookimpl
def short_name() -> Optional[str]:
    return "npm"
