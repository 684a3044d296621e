# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import os
import pathlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from sediment.fileinfo import calc_md5
from sediment.inventory import Artifact, ComponentPatternData
from sediment.utils.globs import is_selected


@dataclass
class ComponentContribution:
    """What a contributor found in a directory.

    Attributes:
        pattern (ComponentPatternData): The component pattern anchored in the directory.
        covered_files (List[str]): Files of the component, as POSIX paths relative to the
            directory; they are not reported as separate artifacts.
        expansion (List[Artifact]): Further artifacts the component declares, e.g. the packages
            listed in a lock file or package database.
    """

    pattern: ComponentPatternData
    covered_files: List[str] = field(default_factory=list)
    expansion: List[Artifact] = field(default_factory=list)


def list_files(
    directory: pathlib.Path, includes: Sequence[str], excludes: Sequence[str] = ()
) -> List[str]:
    """Relative POSIX paths of the files below directory selected by the globs.

    Symbolic links are neither followed nor returned.
    """
    selected = []
    for root, dirs, files in os.walk(directory):
        dirs.sort()
        rel_root = pathlib.Path(root).relative_to(directory).as_posix()
        for name in sorted(files):
            if os.path.islink(os.path.join(root, name)):
                continue
            rel_path = name if rel_root == "." else f"{rel_root}/{name}"
            if is_selected(rel_path, includes, excludes):
                selected.append(rel_path)
    return selected


# pylint: disable-next=too-many-arguments
def make_contribution(
    directory: pathlib.Path,
    anchor: str,
    name: str,
    version: Optional[str],
    component_type: str,
    source_type: str,
    part: Optional[str] = None,
    includes: Sequence[str] = ("**/*",),
    excludes: Sequence[str] = (),
    expansion: Optional[List[Artifact]] = None,
) -> ComponentContribution:
    """Build a contribution for a component whose version anchor is a file inside directory."""
    if part is None:
        part = f"{name}-{version}" if version else name
    cpd = ComponentPatternData()
    cpd.set(ComponentPatternData.COMPONENT_NAME, name)
    cpd.set(ComponentPatternData.COMPONENT_PART, part)
    cpd.set(ComponentPatternData.COMPONENT_VERSION, version)
    cpd.set(ComponentPatternData.VERSION_ANCHOR, anchor)
    cpd.set(ComponentPatternData.VERSION_ANCHOR_CHECKSUM, calc_md5(directory / anchor))
    cpd.set(ComponentPatternData.INCLUDE_PATTERN, ", ".join(includes))
    cpd.set(ComponentPatternData.EXCLUDE_PATTERN, ", ".join(excludes))
    cpd.set(ComponentPatternData.TYPE, component_type)
    cpd.set(ComponentPatternData.COMPONENT_SOURCE_TYPE, source_type)
    return ComponentContribution(
        pattern=cpd,
        covered_files=list_files(directory, includes, excludes),
        expansion=expansion or [],
    )


def declared_artifact(
    name: str,
    version: Optional[str],
    component_type: str,
    source_type: str,
    attributes: Optional[Dict[str, str]] = None,
) -> Artifact:
    """An artifact declared by component metadata rather than found as a file."""
    artifact = Artifact()
    artifact.id = f"{name}-{version}" if version else name
    artifact.set(Artifact.COMPONENT, name)
    artifact.version = version
    artifact.set(Artifact.TYPE, component_type)
    artifact.set(Artifact.COMPONENT_SOURCE_TYPE, source_type)
    for key, value in (attributes or {}).items():
        artifact.set(key, value)
    return artifact
