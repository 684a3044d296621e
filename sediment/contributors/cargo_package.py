# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import pathlib
from typing import List, Optional

import tomlkit
from loguru import logger
from tomlkit.exceptions import TOMLKitError

import sediment.plugin
from sediment.contributors.base import ComponentContribution, declared_artifact, make_contribution
from sediment.inventory import Artifact

CARGO_TOML = "Cargo.toml"
CARGO_LOCK = "Cargo.lock"


def read_toml(path: pathlib.Path) -> Optional[dict]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return tomlkit.parse(f.read()).unwrap()
    except (OSError, UnicodeDecodeError, TOMLKitError) as e:
        logger.warning(f"Unable to read {path}: {e}")
        return None


def locked_crates(lock: dict, own_name: str) -> List[Artifact]:
    artifacts = []
    packages = lock.get("package", [])
    if not isinstance(packages, list):
        logger.warning(f"Ignoring {CARGO_LOCK}: 'package' is not an array of tables")
        return artifacts
    for package in packages:
        if not isinstance(package, dict):
            continue
        name = package.get("name")
        if not isinstance(name, str) or not name or name == own_name:
            continue
        attributes = {}
        source = package.get("source")
        if isinstance(source, str) and source:
            attributes[Artifact.URL] = source.split("+", 1)[-1]
        artifacts.append(
            declared_artifact(name, package.get("version"), "crate", "cargo", attributes)
        )
    return artifacts


@sediment.plugin.hookimpl
def contribute_component(
    directory: pathlib.Path, relative_path: str
) -> Optional[ComponentContribution]:
    if not (directory / CARGO_TOML).is_file():
        return None
    manifest = read_toml(directory / CARGO_TOML)
    package = manifest.get("package") if manifest else None
    if not isinstance(package, dict) or not isinstance(package.get("name"), str):
        # workspace manifests carry no package of their own
        return None
    version = package.get("version")
    if not isinstance(version, str):
        # inherited from the workspace, e.g. version.workspace = true
        version = None

    expansion = []
    if (directory / CARGO_LOCK).is_file():
        lock = read_toml(directory / CARGO_LOCK)
        if lock:
            expansion = locked_crates(lock, package["name"])

    logger.debug(f"cargo crate {package['name']} found in {relative_path or '.'}")
    return make_contribution(
        directory,
        anchor=CARGO_TOML,
        name=package["name"],
        version=version,
        component_type="crate",
        source_type="cargo",
        excludes=("target/**",),
        expansion=expansion,
    )


@sediment.plugin.hookimpl
def short_name() -> Optional[str]:
    return "cargo"
