# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from dataclasses_json import config, dataclass_json
from loguru import logger

from ._artifact import Artifact
from ._asset import Asset, InventoryInfo, LicenseData
from ._attributes import AttributeBag, is_blank
from ._pattern import ComponentPatternData


def _sheet(name: str, row_type: Callable[[Dict[str, str]], AttributeBag]):
    return field(
        default_factory=list,
        metadata=config(
            field_name=name,
            encoder=lambda rows: [row.attributes() for row in rows],
            decoder=lambda rows: [row_type(row) for row in rows or []],
        ),
    )


def _same(a: Optional[str], b: Optional[str]) -> bool:
    return a is not None and b is not None and a.strip().lower() == b.strip().lower()


# pylint: disable=too-many-instance-attributes
@dataclass_json
@dataclass
class Inventory:
    artifacts: List[Artifact] = _sheet("Artifacts", Artifact)
    assets: List[Asset] = _sheet("Assets", Asset)
    license_data: List[LicenseData] = _sheet("License Data", LicenseData)
    component_patterns: List[ComponentPatternData] = _sheet(
        "Component Patterns", ComponentPatternData
    )
    info: List[InventoryInfo] = _sheet("Info", InventoryInfo)

    def __post_init__(self):
        self.lock = threading.RLock()

    def find_artifact(self, artifact_id: str) -> Optional[Artifact]:
        for artifact in self.artifacts:
            if _same(artifact.id, artifact_id):
                return artifact
        return None

    def find_all_with_id(self, artifact_id: str) -> List[Artifact]:
        return [a for a in self.artifacts if _same(a.id, artifact_id)]

    def find_artifact_by_id_and_checksum(
        self, artifact_id: Optional[str], checksum: Optional[str]
    ) -> Optional[Artifact]:
        """Finds an artifact by id and checksum. Returns None if either of them is blank."""
        if is_blank(artifact_id) or is_blank(checksum):
            return None
        for artifact in self.artifacts:
            if _same(artifact.id, artifact_id) and _same(artifact.checksum, checksum):
                return artifact
        return None

    def find_asset(self, asset_id: Optional[str]) -> Optional[Asset]:
        if is_blank(asset_id):
            return None
        for asset in self.assets:
            if asset.asset_id == asset_id:
                return asset
        return None

    def add_asset(self, asset: Asset) -> None:
        """Adds an asset; a missing or already used Asset Id is rejected with a ValueError."""
        if is_blank(asset.asset_id):
            raise ValueError(f"Asset without '{Asset.ASSET_ID}': {asset!r}")
        with self.lock:
            if self.find_asset(asset.asset_id) is not None:
                raise ValueError(f"Duplicate asset id '{asset.asset_id}'")
            self.assets.append(asset)

    def find_license_data(self, canonical_name: Optional[str]) -> Optional[LicenseData]:
        for license_data in self.license_data:
            if _same(license_data.canonical_name, canonical_name):
                return license_data
        return None

    def find_component_patterns(
        self, component_part: str, component_version: Optional[str] = None
    ) -> List[ComponentPatternData]:
        return [
            cpd
            for cpd in self.component_patterns
            if _same(cpd.component_part, component_part)
            and (component_version is None or cpd.component_version == component_version)
        ]

    def is_empty(self) -> bool:
        return not (
            self.artifacts
            or self.assets
            or self.license_data
            or self.component_patterns
            or self.info
        )

    def inherit(self, other: "Inventory") -> None:
        """Adds everything from other whose identity is not yet present; existing entries are kept."""
        with self.lock:
            known = {_artifact_key(a) for a in self.artifacts}
            added = 0
            for artifact in other.artifacts:
                key = _artifact_key(artifact)
                if key not in known:
                    known.add(key)
                    self.artifacts.append(artifact.copy())
                    added += 1
            for asset in other.assets:
                if self.find_asset(asset.asset_id) is None:
                    self.assets.append(asset.copy())
            for license_data in other.license_data:
                if self.find_license_data(license_data.canonical_name) is None:
                    self.license_data.append(license_data.copy())
            qualifiers = {cpd.qualifier() for cpd in self.component_patterns}
            for cpd in other.component_patterns:
                if cpd.qualifier() not in qualifiers:
                    qualifiers.add(cpd.qualifier())
                    self.component_patterns.append(cpd.copy())
            info_ids = {i.id for i in self.info}
            for info in other.info:
                if info.id not in info_ids:
                    self.info.append(info.copy())
            logger.debug(f"Inherited {added} of {len(other.artifacts)} artifacts")


def _artifact_key(artifact: Artifact) -> tuple:
    return tuple(
        (artifact.get(key) or "").strip().lower()
        for key in (Artifact.ID, Artifact.VERSION, Artifact.CHECKSUM)
    )
