# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import hashlib
import json
from typing import Dict, Iterable, List, Optional, Sequence, Set

from loguru import logger

from sediment.configmanager import ConfigManager
from sediment.inventory import Artifact, Inventory, is_blank

DEFAULT_EXCLUDED_ATTRIBUTES = (
    Artifact.VERIFIED,
    Artifact.ARCHIVE_PATH,
    Artifact.LATEST_VERSION,
    Artifact.SECURITY_RELEVANCE,
    Artifact.SECURITY_CATEGORY,
    Artifact.WILDCARD_MATCH,
)

DEFAULT_MERGE_ATTRIBUTES = (
    Artifact.ROOT_PATHS,
    Artifact.SOURCE_PROJECT,
)


class MergeConfigError(ValueError):
    """Raised for an unusable excluded-attribute or merge-attribute configuration."""


def _validated(names: Iterable[str], setting: str) -> List[str]:
    validated = []
    for name in names:
        if not isinstance(name, str) or is_blank(name):
            raise MergeConfigError(f"{setting} contains an invalid attribute name: {name!r}")
        if name.strip() == Artifact.ID:
            raise MergeConfigError(f"'{Artifact.ID}' cannot be part of {setting}")
        validated.append(name.strip())
    return validated


class MergeEngine:
    """Reconciles partial inventories into one canonical inventory.

    Args:
        excluded_attributes (Optional[Sequence[str]]): Attributes cleared from every artifact of the
            target before duplicates are detected. Defaults to the ``merge.excluded_attributes``
            setting or DEFAULT_EXCLUDED_ATTRIBUTES.
        merge_attributes (Optional[Sequence[str]]): Attributes that do not distinguish duplicates;
            their values are collected onto the retained artifact. Defaults to the
            ``merge.merge_attributes`` setting or DEFAULT_MERGE_ATTRIBUTES.

    Raises:
        MergeConfigError: If an attribute name is blank, names ``Id``, or appears in both sets.
    """

    def __init__(
        self,
        excluded_attributes: Optional[Sequence[str]] = None,
        merge_attributes: Optional[Sequence[str]] = None,
    ):
        config = ConfigManager()
        if excluded_attributes is None:
            excluded_attributes = config.get_list(
                "merge", "excluded_attributes", list(DEFAULT_EXCLUDED_ATTRIBUTES)
            )
        if merge_attributes is None:
            merge_attributes = config.get_list(
                "merge", "merge_attributes", list(DEFAULT_MERGE_ATTRIBUTES)
            )
        self.excluded_attributes: List[str] = _validated(excluded_attributes, "excluded attributes")
        self.merge_attributes: List[str] = _validated(merge_attributes, "merge attributes")
        overlap = set(self.excluded_attributes) & set(self.merge_attributes)
        if overlap:
            raise MergeConfigError(
                f"Attributes cannot be both excluded and merged: {', '.join(sorted(overlap))}"
            )

    def merge_inventories(self, sources: Sequence[Inventory], target: Inventory) -> None:
        """Merges each source, in order, into target.

        The work is done on copies of the target's entries; the target only sees the final
        result, swapped in under its lock.
        """
        if not sources:
            return
        with target.lock:
            staged = Inventory(
                artifacts=[a.copy() for a in target.artifacts],
                assets=list(target.assets),
                license_data=[ld.copy() for ld in target.license_data],
            )
            for index, source in enumerate(sources):
                logger.debug(
                    f"Merging source {index + 1}/{len(sources)} "
                    f"({len(source.artifacts)} artifacts) into {len(staged.artifacts)} artifacts"
                )
                with source.lock:
                    self.merge_artifacts(source, staged)
                    self.merge_assets(source, staged)
                    self.merge_license_data(source, staged)
            target.artifacts = staged.artifacts
            target.assets = staged.assets
            target.license_data = staged.license_data
        logger.info(
            f"Merged {len(sources)} inventories; result holds {len(target.artifacts)} artifacts, "
            f"{len(target.assets)} assets and {len(target.license_data)} license data entries"
        )

    def merge_artifacts(self, source: Inventory, target: Inventory) -> None:
        self._backfill_checksums(source, target)
        for artifact in source.artifacts:
            existing = target.find_artifact_by_id_and_checksum(artifact.id, artifact.checksum)
            if existing is None:
                target.artifacts.append(artifact.copy())
                continue
            for attribute in self.merge_attributes:
                existing.append(attribute, artifact.get(attribute))
        self.deduplicate(target.artifacts)

    @staticmethod
    def _backfill_checksums(source: Inventory, target: Inventory) -> None:
        for artifact in target.artifacts:
            if not is_blank(artifact.checksum):
                continue
            root_paths = artifact.root_paths
            if not root_paths:
                continue
            matches = [
                candidate
                for candidate in source.find_all_with_id(artifact.id)
                if not is_blank(candidate.checksum)
                and any(rp in cp for rp in root_paths for cp in candidate.root_paths)
            ]
            if matches:
                # the last match wins
                logger.debug(f"Copying checksum of {matches[-1]} to artifact {artifact.id}")
                artifact.checksum = matches[-1].checksum

    def representation_key(self, artifact: Artifact, keys: Iterable[str]) -> str:
        """Order-independent identity of an artifact over the given attribute keys."""
        pairs = sorted(
            ((key, artifact.get(key)) for key in keys if artifact.has(key)),
            key=lambda kv: (kv[0].lower(), kv[0]),
        )
        return hashlib.sha256(json.dumps(pairs).encode("utf-8")).hexdigest()

    def deduplicate(self, artifacts: List[Artifact]) -> None:
        """Removes artifacts with the same representation, keeping the first occurrence.

        Excluded attributes are cleared from every artifact. The merge attribute values of every
        removed duplicate are appended to the artifact that is kept.
        """
        for artifact in artifacts:
            for key in self.excluded_attributes:
                artifact.remove(key)

        ignored: Set[str] = set(self.excluded_attributes) | set(self.merge_attributes)
        keys: Set[str] = set()
        for artifact in artifacts:
            keys.update(k for k in artifact.keys() if k not in ignored)

        retained: Dict[str, Artifact] = {}
        kept: List[Artifact] = []
        for artifact in artifacts:
            key = self.representation_key(artifact, keys)
            first = retained.get(key)
            if first is None:
                retained[key] = artifact
                kept.append(artifact)
                continue
            logger.debug(f"Dropping duplicate artifact {artifact}")
            for attribute in self.merge_attributes:
                first.append(attribute, artifact.get(attribute))
        artifacts[:] = kept

    @staticmethod
    def merge_assets(source: Inventory, target: Inventory) -> None:
        known = {asset.asset_id for asset in target.assets}
        for asset in source.assets:
            if asset.asset_id not in known:
                known.add(asset.asset_id)
                target.assets.append(asset.copy())

    @staticmethod
    def merge_license_data(source: Inventory, target: Inventory) -> None:
        for license_data in source.license_data:
            existing = target.find_license_data(license_data.canonical_name)
            if existing is None:
                target.license_data.append(license_data.copy())
            else:
                existing.merge(license_data)


def merge_inventories(sources: Sequence[Inventory], target: Inventory) -> None:
    MergeEngine().merge_inventories(sources, target)
