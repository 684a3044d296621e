# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import pathlib
from dataclasses import dataclass, field
from typing import List, Optional

from loguru import logger

import sediment.plugin
from sediment.contributors.base import ComponentContribution, declared_artifact, make_contribution
from sediment.inventory import Artifact

APK_DB_DIR = "lib/apk/db"
INSTALLED_FILE = "installed"


@dataclass
class ApkPackage:
    """One package record of the apk installed database."""

    name: Optional[str] = None
    version: Optional[str] = None
    arch: Optional[str] = None
    license: Optional[str] = None
    origin: Optional[str] = None
    files: List[str] = field(default_factory=list)


def read_installed(path: pathlib.Path) -> List[ApkPackage]:
    """Parses ``lib/apk/db/installed``.

    Records are separated by blank lines; each line is a one-letter field, a colon and a value.
    ``F:`` names a directory and the ``R:`` lines after it name the files within it.
    """
    packages = []
    package = ApkPackage()
    folder = ""
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            line = line.rstrip("\n")
            if not line.strip():
                if package.name:
                    packages.append(package)
                package, folder = ApkPackage(), ""
                continue
            if len(line) < 2 or line[1] != ":":
                logger.debug(f"Ignoring malformed line in {path}: {line!r}")
                continue
            tag, value = line[0], line[2:].strip()
            if tag == "P":
                package.name = value
            elif tag == "V":
                package.version = value
            elif tag == "A":
                package.arch = value
            elif tag == "L":
                package.license = value
            elif tag == "o":
                package.origin = value
            elif tag == "F":
                folder = value.strip("/")
            elif tag == "R" and value:
                package.files.append(f"{folder}/{value}" if folder else value)
    if package.name:
        packages.append(package)
    return packages


def package_artifact(package: ApkPackage) -> Artifact:
    attributes = {
        Artifact.LICENSE: package.license,
        "Architecture": package.arch,
        "Source Package": package.origin,
    }
    if package.version:
        purl = f"pkg:apk/alpine/{package.name}@{package.version}"
        attributes[Artifact.PURL] = purl + (f"?arch={package.arch}" if package.arch else "")
    return declared_artifact(package.name, package.version, "package", "apk", attributes)


@sediment.plugin.hookimpl
def contribute_component(
    directory: pathlib.Path, relative_path: str
) -> Optional[ComponentContribution]:
    if not (relative_path == APK_DB_DIR or relative_path.endswith("/" + APK_DB_DIR)):
        return None
    if not (directory / INSTALLED_FILE).is_file():
        return None

    try:
        packages = read_installed(directory / INSTALLED_FILE)
    except OSError as e:
        logger.warning(f"Unable to read {relative_path}/{INSTALLED_FILE}: {e}")
        return None

    contribution = make_contribution(
        directory,
        anchor=INSTALLED_FILE,
        name="apk-database",
        version=None,
        component_type="package-database",
        source_type="apk",
        expansion=[package_artifact(p) for p in packages],
    )
    # file entries are relative to the root of the image: three levels up
    for package in packages:
        for installed in package.files:
            contribution.covered_files.append("../../../" + installed)
    logger.info(f"apk database in {relative_path} lists {len(packages)} packages")
    return contribution


@sediment.plugin.hookimpl
def short_name() -> Optional[str]:
    return "apk"
