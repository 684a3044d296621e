# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import pathlib
import re
from typing import Dict, List, Optional

from loguru import logger

import sediment.plugin
from sediment.contributors.base import ComponentContribution, declared_artifact, make_contribution
from sediment.inventory import Artifact

DPKG_DIR = "var/lib/dpkg"
STATUS_FILE = "status"
INFO_DIR = "info"

_MD5_LINE = re.compile(r"^([0-9a-fA-F]{32})\s+(.+)$")


def read_status(path: pathlib.Path) -> List[Dict[str, str]]:
    """Parses a dpkg status file into one dict of fields per package paragraph.

    Continuation lines are folded into the preceding field, joined by a newline.
    """
    paragraphs = []
    fields: Dict[str, str] = {}
    key = None
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            line = line.rstrip("\n")
            if not line.strip():
                if fields:
                    paragraphs.append(fields)
                fields, key = {}, None
            elif line[0] in " \t":
                if key is None:
                    logger.debug(f"Continuation line without a field in {path}: {line!r}")
                    continue
                fields[key] = f"{fields[key]}\n{line[1:]}"
            elif ":" in line:
                key, value = line.split(":", 1)
                key = key.strip()
                fields[key] = value.strip()
            else:
                logger.debug(f"Ignoring malformed line in {path}: {line!r}")
    if fields:
        paragraphs.append(fields)
    return paragraphs


def is_installed(fields: Dict[str, str]) -> bool:
    # Status: <want> <flag> <state>
    status = fields.get("Status")
    return status is None or status.split()[-1:] == ["installed"]


def md5sums_file(info_dir: pathlib.Path, name: str, arch: Optional[str]) -> Optional[pathlib.Path]:
    candidates = [info_dir / f"{name}.md5sums"]
    if arch:
        candidates.append(info_dir / f"{name}:{arch}.md5sums")
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def installed_files(md5sums: pathlib.Path) -> List[str]:
    """Image-relative paths listed in an md5sums file."""
    files = []
    with open(md5sums, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            match = _MD5_LINE.match(line.rstrip("\n"))
            if match:
                files.append(match.group(2).lstrip("/"))
    return files


def package_artifact(fields: Dict[str, str]) -> Artifact:
    name = fields["Package"]
    version = fields.get("Version")
    arch = fields.get("Architecture")
    attributes = {"Architecture": arch, "Source Package": fields.get("Source")}
    if version:
        attributes[Artifact.PURL] = f"pkg:deb/{name}@{version}" + (f"?arch={arch}" if arch else "")
    return declared_artifact(name, version, "package", "dpkg", attributes)


@sediment.plugin.hookimpl
def contribute_component(
    directory: pathlib.Path, relative_path: str
) -> Optional[ComponentContribution]:
    if not (relative_path == DPKG_DIR or relative_path.endswith("/" + DPKG_DIR)):
        return None
    if not (directory / STATUS_FILE).is_file():
        return None

    try:
        paragraphs = read_status(directory / STATUS_FILE)
    except OSError as e:
        logger.warning(f"Unable to read {relative_path}/{STATUS_FILE}: {e}")
        return None
    packages = [p for p in paragraphs if p.get("Package") and is_installed(p)]

    contribution = make_contribution(
        directory,
        anchor=STATUS_FILE,
        name="dpkg-database",
        version=None,
        component_type="package-database",
        source_type="dpkg",
        expansion=[package_artifact(p) for p in packages],
    )
    info_dir = directory / INFO_DIR
    for package in packages:
        md5sums = md5sums_file(info_dir, package["Package"], package.get("Architecture"))
        if md5sums is None:
            logger.debug(f"No md5sums for dpkg package {package['Package']}")
            continue
        # md5sums paths are relative to the root of the image: three levels up
        for installed in installed_files(md5sums):
            contribution.covered_files.append("../../../" + installed)
    logger.info(f"dpkg database in {relative_path} lists {len(packages)} installed packages")
    return contribution


@sediment.plugin.hookimpl
def short_name() -> Optional[str]:
    return "dpkg"
