# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import pathlib
from typing import List, Optional

from loguru import logger

import sediment.plugin
from sediment.contributors.base import ComponentContribution, declared_artifact, make_contribution
from sediment.contributors.ndb import NdbFormatError, NdbReader, parse_rpm_header
from sediment.inventory import Artifact

RPM_DB_DIR = "var/lib/rpm"
NDB_FILE = "Packages.db"


def read_packages(path: pathlib.Path) -> List[dict]:
    """Decoded headers of every package in an ndb database; stops at the first corrupt record."""
    packages = []
    with NdbReader(path).read() as stream:
        for entry in stream:
            if entry.error is not None:
                logger.warning(f"Stopped reading {path} after {len(packages)} packages: {entry.error}")
                break
            try:
                packages.append(parse_rpm_header(entry.blob))
            except NdbFormatError as e:
                logger.warning(f"Skipping unreadable package header in {path}: {e}")
    return packages


def package_artifact(package: dict) -> Artifact:
    version = package.get("Version")
    if version and package.get("Release"):
        version = f"{version}-{package['Release']}"
    if version and package.get("Epoch"):
        version = f"{package['Epoch']}:{version}"
    artifact = declared_artifact(
        package["Name"],
        version,
        "package",
        "rpm",
        {Artifact.LICENSE: package.get("License"), "Architecture": package.get("Arch")},
    )
    if package.get("Arch"):
        artifact.id = f"{artifact.id}.{package['Arch']}"
    return artifact


@sediment.plugin.hookimpl
def contribute_component(
    directory: pathlib.Path, relative_path: str
) -> Optional[ComponentContribution]:
    if not (relative_path == RPM_DB_DIR or relative_path.endswith("/" + RPM_DB_DIR)):
        return None
    if not (directory / NDB_FILE).is_file():
        return None

    packages = [p for p in read_packages(directory / NDB_FILE) if p.get("Name")]
    contribution = make_contribution(
        directory,
        anchor=NDB_FILE,
        name="rpm-database",
        version=None,
        component_type="package-database",
        source_type="rpm",
        includes=("*",),
        expansion=[package_artifact(p) for p in packages],
    )
    # installed files are listed absolute to the root of the image: three levels up
    for package in packages:
        for installed in package["Files"]:
            contribution.covered_files.append("../../.." + installed)
    logger.info(f"rpm database in {relative_path} lists {len(packages)} packages")
    return contribution


@sediment.plugin.hookimpl
def short_name() -> Optional[str]:
    return "rpm"
