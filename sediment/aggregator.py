# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import os
import pathlib
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from loguru import logger

from sediment.configmanager import ConfigManager
from sediment.inventory import Artifact, ComponentPatternData, Inventory
from sediment.scan.context import physical_path
from sediment.utils.globs import is_selected, matches_any
from sediment.utils.paths import normalize_path

DEFAULT_ALLOWED_DUPLICATES = ("**/LICENSE*", "**/NOTICE*", "**/COPYING*")


@dataclass
class ArtifactCoverage:
    """The files covered by an artifact, partitioned by how they are shared with other artifacts.

    All paths are logical paths relative to the scan root.
    """

    artifact: Artifact
    files: List[str] = field(default_factory=list)
    exclusive: List[str] = field(default_factory=list)
    allowed_duplicates: List[str] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)


class Aggregator:
    """Maps the artifacts of a scan inventory to the files they cover.

    Args:
        root_dir: The root directory of the scan.
        scratch_dir: The directory archives were unpacked into during the scan.
        allowed_duplicates (Optional[Sequence[str]]): Globs of files any number of artifacts may
            share. Defaults to the ``aggregate.allowed_duplicates`` setting.
    """

    def __init__(self, root_dir, scratch_dir, allowed_duplicates: Optional[Sequence[str]] = None):
        self.root_dir = pathlib.Path(root_dir)
        self.scratch_dir = pathlib.Path(scratch_dir)
        if allowed_duplicates is None:
            allowed_duplicates = ConfigManager().get_list(
                "aggregate", "allowed_duplicates", list(DEFAULT_ALLOWED_DUPLICATES)
            )
        self.allowed_duplicates = list(allowed_duplicates)

    def pattern_for(self, inventory: Inventory, artifact: Artifact) -> Optional[ComponentPatternData]:
        if artifact.id is None:
            return None
        for cpd in inventory.find_component_patterns(artifact.id, artifact.version):
            if not artifact.checksum or cpd.version_anchor_checksum in ("*", artifact.checksum):
                return cpd
        return None

    def covered_files(self, artifact: Artifact, cpd: Optional[ComponentPatternData]) -> List[str]:
        """Logical paths of the files an artifact covers; missing locations are recorded as errors."""
        files = []
        for root_path in artifact.root_paths:
            logical = "" if root_path == "." else root_path
            location = physical_path(self.root_dir, self.scratch_dir, logical)
            if cpd is not None and location.is_dir():
                files.extend(self._select(location, logical, cpd))
            elif location.is_file():
                files.append(logical)
            else:
                artifact.add_error(f"Location {root_path} not found")
        return files

    def _select(self, location: pathlib.Path, logical: str, cpd: ComponentPatternData) -> List[str]:
        selected = []
        for root, dirs, names in os.walk(location):
            dirs.sort()
            rel_root = pathlib.Path(root).relative_to(location).as_posix()
            for name in sorted(names):
                relative = name if rel_root == "." else f"{rel_root}/{name}"
                if is_selected(relative, cpd.include_patterns, cpd.exclude_patterns):
                    selected.append(normalize_path(logical, relative))
        # exploded archives live in the scratch directory, next to their logical place
        scratch_location = self.scratch_dir / logical if logical else self.scratch_dir
        if scratch_location != location and scratch_location.is_dir():
            selected.extend(
                path for path in self._select(scratch_location, logical, cpd) if path not in selected
            )
        return selected

    def aggregate(self, inventory: Inventory) -> List[ArtifactCoverage]:
        coverages = []
        owners: Dict[str, List[int]] = defaultdict(list)
        for index, artifact in enumerate(inventory.artifacts):
            if not artifact.root_paths:
                continue
            cpd = self.pattern_for(inventory, artifact)
            coverage = ArtifactCoverage(artifact, files=self.covered_files(artifact, cpd))
            coverages.append((coverage, cpd))
            for path in set(coverage.files):
                owners[path].append(index)

        results = []
        for coverage, cpd in coverages:
            for path in sorted(set(coverage.files)):
                if len(owners[path]) == 1:
                    coverage.exclusive.append(path)
                elif self._sharing_allowed(path, cpd):
                    coverage.allowed_duplicates.append(path)
                else:
                    coverage.duplicates.append(path)
            if coverage.duplicates:
                logger.warning(
                    f"{coverage.artifact} shares {len(coverage.duplicates)} files with other artifacts"
                )
            results.append(coverage)
        return results

    def _sharing_allowed(self, path: str, cpd: Optional[ComponentPatternData]) -> bool:
        if cpd is not None and matches_any(path, cpd.shared_include_patterns):
            return not matches_any(path, cpd.shared_exclude_patterns)
        return matches_any(path, self.allowed_duplicates)
