# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import pathlib
from typing import Dict, Optional

from loguru import logger

import sediment.plugin
from sediment.contributors.base import ComponentContribution, make_contribution

POM_PROPERTIES = "pom.properties"


def read_properties(path: pathlib.Path) -> Dict[str, str]:
    """Parse a Java properties file of simple ``key=value`` lines."""
    properties = {}
    try:
        with open(path, "r", encoding="latin-1") as f:
            for line in f:
                line = line.strip()
                if not line or line[0] in "#!":
                    continue
                for separator in ("=", ":"):
                    if separator in line:
                        key, value = line.split(separator, 1)
                        properties[key.strip()] = value.strip()
                        break
    except OSError as e:
        logger.warning(f"Unable to read {path}: {e}")
    return properties


@sediment.plugin.hookimpl
def contribute_component(
    directory: pathlib.Path, relative_path: str
) -> Optional[ComponentContribution]:
    if not (directory / "META-INF" / "maven").is_dir():
        return None
    anchors = sorted(directory.glob(f"META-INF/maven/*/*/{POM_PROPERTIES}"))
    # shaded jars bundle the metadata of several artifacts; none of them owns the content
    if len(anchors) != 1:
        logger.debug(f"Skipping {relative_path}: {len(anchors)} {POM_PROPERTIES} files present")
        return None
    properties = read_properties(anchors[0])
    artifact_id = properties.get("artifactId")
    if not artifact_id:
        return None

    contribution = make_contribution(
        directory,
        anchor=anchors[0].relative_to(directory).as_posix(),
        name=artifact_id,
        version=properties.get("version"),
        component_type="maven-module",
        source_type="maven",
    )
    contribution.pattern.set("Group Id", properties.get("groupId"))
    logger.debug(f"maven module {artifact_id} found in {relative_path or '.'}")
    return contribution


@sediment.plugin.hookimpl
def short_name() -> Optional[str]:
    return "maven"
