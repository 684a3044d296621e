# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import os
import pathlib
import shutil
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import List, Optional

import pluggy
from loguru import logger

from sediment.fileinfo import calc_file_hashes
from sediment.inventory import Artifact, Inventory, InventoryInfo, RelationshipType
from sediment.plugin.manager import get_plugin_manager
from sediment.scan.components import (
    mark_asset_chain,
    alias_symlinks,
    apply_contributions,
    apply_reference_patterns,
)
from sediment.scan.context import DirectoryTask, FoundComponent, ScanContext
from sediment.scan.params import ScanParam
from sediment.scan.reference import ReferenceMatcher
from sediment.utils.paths import is_unpack_dir_name, normalize_path, unpack_dir_name


class ScanEngine:
    """Builds the inventory of a directory tree.

    Args:
        param (Optional[ScanParam]): Scan settings; defaults apply when omitted.
        reference (Optional[Inventory]): Curated inventory used to identify what is found.
        pm (Optional[pluggy.PluginManager]): Plugin manager providing contributors and unpackers.
    """

    def __init__(
        self,
        param: Optional[ScanParam] = None,
        reference: Optional[Inventory] = None,
        pm: Optional[pluggy.PluginManager] = None,
    ):
        self.param = param or ScanParam()
        self.reference = reference if reference is not None else Inventory()
        self.pm = pm or get_plugin_manager()
        self.matcher = ReferenceMatcher(self.reference)

    def scan(self, root_dir, scratch_dir) -> Inventory:
        """Scans root_dir, exploding archives into scratch_dir.

        Raises:
            NotADirectoryError: If root_dir is not a directory.
            ValueError: If scratch_dir is not empty or lies within root_dir.
        """
        root_dir = pathlib.Path(root_dir).resolve()
        scratch_dir = pathlib.Path(scratch_dir).resolve()
        if not root_dir.is_dir():
            raise NotADirectoryError(f"Scan root {root_dir} is not a directory")
        if scratch_dir == root_dir or root_dir in scratch_dir.parents:
            raise ValueError(f"Scratch directory {scratch_dir} must be outside of {root_dir}")
        scratch_dir.mkdir(parents=True, exist_ok=True)
        if any(scratch_dir.iterdir()):
            raise ValueError(f"Scratch directory {scratch_dir} is not empty")

        context = ScanContext(root_dir, scratch_dir, self.param)
        logger.info(f"Scanning {root_dir} with {self.param.workers} workers")
        self._walk(context)
        logger.info(
            f"Collected {len(context.file_artifacts)} files, "
            f"{len(context.components)} components and {len(context.allocator)} unpacked archives"
        )

        claimed = apply_reference_patterns(context, self.reference.component_patterns)
        apply_contributions(context, claimed)
        alias_symlinks(context)

        inventory = context.inventory
        matched = sum(1 for artifact in inventory.artifacts if self.matcher.apply(artifact))
        logger.info(f"{matched} of {len(inventory.artifacts)} artifacts found in the reference inventory")

        inventory.artifacts.sort(key=lambda a: ((a.root_paths or [""])[0], a.id or ""))
        inventory.info.append(self._scan_info(root_dir, inventory, context.errors))
        return inventory

    def _walk(self, context: ScanContext) -> None:
        with ThreadPoolExecutor(max_workers=self.param.workers) as executor:
            pending = {executor.submit(self.scan_directory, context, DirectoryTask(context.root_dir, ""))}
            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    for task in future.result():
                        pending.add(executor.submit(self.scan_directory, context, task))

    def scan_directory(self, context: ScanContext, task: DirectoryTask) -> List[DirectoryTask]:
        """Collects the files of one directory.

        Returns:
            List[DirectoryTask]: Subdirectories and exploded archives still to be walked.
        """
        try:
            entries = sorted(os.scandir(task.physical_dir), key=lambda e: e.name)
        except OSError as e:
            logger.warning(f"Unable to list {task.logical_dir or '.'}: {e}")
            return []

        self._detect_component(context, task)

        children = []
        file_names = {entry.name for entry in entries if entry.is_file(follow_symlinks=False)}
        for entry in entries:
            logical_path = normalize_path(task.logical_dir, entry.name)
            if entry.is_symlink():
                context.record_symlink(logical_path, os.readlink(entry.path))
            elif entry.is_dir(follow_symlinks=False):
                if is_unpack_dir_name(entry.name):
                    if entry.name[1:-1] not in file_names:
                        logger.warning(f"Skipping {logical_path}: name is reserved for unpacked archives")
                    continue
                children.append(DirectoryTask(pathlib.Path(entry.path), logical_path, task.asset_chain))
            elif entry.is_file(follow_symlinks=False):
                children.extend(self.scan_file(context, pathlib.Path(entry.path), logical_path, task.asset_chain))
        return children

    def _detect_component(self, context: ScanContext, task: DirectoryTask) -> None:
        if not self.param.detect_component_patterns:
            return
        if task.asset_chain and not self.param.include_embedded:
            return
        try:
            contribution = self.pm.hook.contribute_component(
                directory=task.physical_dir, relative_path=task.logical_dir
            )
        except Exception as e:  # pylint: disable=broad-exception-caught
            context.add_scan_error(
                f"Component detection failed in {task.logical_dir or '.'}: {type(e).__name__}: {e}"
            )
            return
        if contribution is not None:
            logger.debug(
                f"Component {contribution.pattern.component_part} found in {task.logical_dir or '.'}"
            )
            context.add_component(FoundComponent(task.logical_dir, contribution, list(task.asset_chain)))

    def scan_file(
        self, context: ScanContext, path: pathlib.Path, logical_path: str, asset_chain: List[str]
    ) -> List[DirectoryTask]:
        if not context.param.collects(logical_path):
            return []
        try:
            hashes = calc_file_hashes(path)
        except OSError as e:
            logger.warning(f"Unable to read {logical_path}: {e}")
            return []
        if hashes is None:
            logger.warning(f"{logical_path} vanished while scanning")
            return []

        artifact = Artifact()
        artifact.id = path.name
        artifact.checksum = hashes["md5"]
        artifact.set(Artifact.HASH_SHA1, hashes["sha1"])
        artifact.set(Artifact.HASH_SHA256, hashes["sha256"])
        artifact.set(Artifact.ARTIFACT_PATH, logical_path)
        artifact.add_root_path(logical_path)
        mark_asset_chain(artifact, asset_chain)
        artifact = context.contribute(artifact)

        if not context.param.unpacks(logical_path):
            return []
        archive_type = self.pm.hook.identify_archive_type(filepath=str(path))
        if archive_type is None:
            return []
        return self.unpack(context, path, logical_path, asset_chain, artifact, archive_type)

    # pylint: disable-next=too-many-arguments,too-many-positional-arguments
    def unpack(
        self,
        context: ScanContext,
        path: pathlib.Path,
        logical_path: str,
        asset_chain: List[str],
        artifact: Artifact,
        archive_type: str,
    ) -> List[DirectoryTask]:
        unpack_logical = normalize_path(os.path.dirname(logical_path), unpack_dir_name(path.name))
        try:
            target = context.allocator.allocate(unpack_logical)
        except FileExistsError as e:
            context.add_error(artifact, f"Unable to unpack {logical_path}: {e}")
            return []
        try:
            handled = self.pm.hook.unpack_archive(
                filepath=str(path), archive_type=archive_type, output_dir=str(target)
            )
        except Exception as e:  # pylint: disable=broad-exception-caught
            context.add_error(artifact, f"Unable to unpack {logical_path}: {e}")
            shutil.rmtree(target, ignore_errors=True)
            return []
        if not handled:
            context.add_error(artifact, f"No unpacker for {archive_type} archive {logical_path}")
            shutil.rmtree(target, ignore_errors=True)
            return []

        asset_id = f"AID-{artifact.id}-{artifact.checksum}"
        context.register_asset(asset_id, artifact.id, logical_path, "Archive")
        context.set_attribute(artifact, asset_id, RelationshipType.DESCRIBES.marker)
        logger.debug(f"Unpacked {archive_type} archive {logical_path}")
        return [DirectoryTask(target, unpack_logical, asset_chain + [asset_id])]

    @staticmethod
    def _scan_info(root_dir: pathlib.Path, inventory: Inventory, errors: List[str]) -> InventoryInfo:
        info = InventoryInfo()
        info.set(InventoryInfo.ID, "scan")
        info.set("Scan Root", str(root_dir))
        info.set("Scan Time", datetime.now(timezone.utc).isoformat())
        info.set("Artifacts", str(len(inventory.artifacts)))
        info.set("Assets", str(len(inventory.assets)))
        for error in errors:
            info.append(Artifact.ERRORS, error, "; ")
        return info
