# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import pathlib
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from loguru import logger

from sediment.contributors.base import ComponentContribution
from sediment.inventory import Artifact, Asset, Inventory
from sediment.scan.params import ScanParam
from sediment.utils.paths import innermost_unpack_dir


@dataclass
class DirectoryTask:
    """A directory still to be walked."""

    physical_dir: pathlib.Path
    logical_dir: str
    asset_chain: List[str] = field(default_factory=list)


@dataclass
class FoundComponent:
    logical_dir: str
    contribution: ComponentContribution
    asset_chain: List[str]


class ScratchAllocator:
    """Hands out the directories that exploded archives are written to.

    The directory for an archive mirrors its logical location below the scratch directory, so
    ``lib/[app.jar]`` is extracted to ``<scratch>/lib/[app.jar]``. Every directory is created
    exclusively and handed out at most once.
    """

    def __init__(self, scratch_dir: pathlib.Path):
        self.scratch_dir = pathlib.Path(scratch_dir)
        self._allocated: Set[str] = set()
        self._lock = threading.Lock()

    def allocate(self, logical_dir: str) -> pathlib.Path:
        with self._lock:
            if logical_dir in self._allocated:
                raise FileExistsError(f"Scratch directory for {logical_dir} was already handed out")
            target = self.scratch_dir / logical_dir
            target.parent.mkdir(parents=True, exist_ok=True)
            target.mkdir()
            self._allocated.add(logical_dir)
            return target

    def __len__(self) -> int:
        return len(self._allocated)


class ScanContext:
    """State shared by the workers of one scan; every mutation goes through a single lock."""

    def __init__(self, root_dir: pathlib.Path, scratch_dir: pathlib.Path, param: ScanParam):
        self.root_dir = pathlib.Path(root_dir)
        self.scratch_dir = pathlib.Path(scratch_dir)
        self.param = param
        self.allocator = ScratchAllocator(self.scratch_dir)
        self.inventory = Inventory()
        self.symlinks: Dict[str, str] = {}
        self.components: List[FoundComponent] = []
        self.errors: List[str] = []
        self._files: Dict[Tuple[str, str], Artifact] = {}
        self._lock = threading.Lock()

    def physical_path(self, logical_path: str) -> pathlib.Path:
        return physical_path(self.root_dir, self.scratch_dir, logical_path)

    @property
    def file_artifacts(self) -> List[Artifact]:
        with self._lock:
            return list(self._files.values())

    def contribute(self, artifact: Artifact) -> Artifact:
        """Adds a file artifact, or folds it into the artifact with the same id and checksum.

        Returns:
            Artifact: The artifact held by the inventory.
        """
        key = (artifact.id, artifact.checksum)
        with self._lock:
            existing = self._files.get(key)
            if existing is None:
                self._files[key] = artifact
                self.inventory.artifacts.append(artifact)
                return artifact
            for column, value in artifact.items():
                if column == Artifact.ROOT_PATHS:
                    existing.append(Artifact.ROOT_PATHS, value)
                elif not existing.has(column):
                    existing.set(column, value)
            logger.debug(f"{artifact.id} also found at {artifact.root_paths}")
            return existing

    def remove_file_artifact(self, artifact: Artifact) -> None:
        with self._lock:
            self._files.pop((artifact.id, artifact.checksum), None)
            self.inventory.artifacts = [a for a in self.inventory.artifacts if a is not artifact]

    def add_artifact(self, artifact: Artifact) -> None:
        with self._lock:
            self.inventory.artifacts.append(artifact)

    def set_attribute(self, artifact: Artifact, key: str, value: str) -> None:
        with self._lock:
            artifact.set(key, value)

    def add_error(self, artifact: Artifact, message: str) -> None:
        logger.warning(f"{artifact.id}: {message}")
        with self._lock:
            artifact.add_error(message)

    def add_scan_error(self, message: str) -> None:
        """Records a problem that belongs to no single artifact."""
        logger.warning(message)
        with self._lock:
            self.errors.append(message)

    def register_asset(self, asset_id: str, name: str, logical_path: str, asset_type: str) -> Asset:
        """Registers an asset; a second location of the same asset is added to its path."""
        with self._lock:
            asset = self.inventory.find_asset(asset_id)
            if asset is None:
                asset = Asset()
                asset.set(Asset.ASSET_ID, asset_id)
                asset.set(Asset.NAME, name)
                asset.set(Asset.TYPE, asset_type)
                self.inventory.add_asset(asset)
            asset.append(Asset.PATH, logical_path)
            return asset

    def record_symlink(self, logical_path: str, target: str) -> None:
        unpack_dir = innermost_unpack_dir(logical_path)
        if unpack_dir and target.startswith("/"):
            # absolute links inside an exploded archive point into the archive
            target = f"/{unpack_dir}{target}"
        with self._lock:
            self.symlinks[f"/{logical_path}"] = target

    def add_component(self, found: FoundComponent) -> None:
        with self._lock:
            self.components.append(found)


def physical_path(root_dir: pathlib.Path, scratch_dir: pathlib.Path, logical_path: str) -> pathlib.Path:
    """Location on disk of a logical path; exploded archive content lives in the scratch directory."""
    if innermost_unpack_dir(logical_path) is not None:
        return pathlib.Path(scratch_dir) / logical_path
    return pathlib.Path(root_dir) / logical_path
