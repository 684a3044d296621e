# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import threading
from typing import Dict, FrozenSet, List, Optional, Tuple

import networkx as nx
from loguru import logger

from sediment.inventory import Artifact, Inventory, Relationship, RelationshipType

ENTITY_ID_SEPARATOR = ":"


def entity_id(artifact: Artifact) -> str:
    """Identifier of an artifact within a relationship: its id, version and checksum."""
    return ENTITY_ID_SEPARATOR.join(
        value
        for value in (artifact.id, artifact.version, artifact.checksum)
        if value is not None
    )


class RelationshipRegistry:
    """Typed relationships between inventory entities.

    Relationships added one by one may be fragmented; call finalize_relationships() to merge
    relationships that share their type and their exact set of related ids.
    """

    def __init__(self):
        self._relationships: List[Relationship] = []
        self._lock = threading.Lock()

    @property
    def relationships(self) -> List[Relationship]:
        with self._lock:
            return list(self._relationships)

    def __len__(self) -> int:
        return len(self._relationships)

    def add_relationship(self, relationship: Optional[Relationship]) -> bool:
        """Adds a relationship.

        Returns:
            bool: False if the relationship is None or has no root or no related ids.
        """
        if relationship is None or relationship.is_empty():
            logger.debug(f"Ignoring incomplete relationship {relationship}")
            return False
        with self._lock:
            self._relationships.append(relationship)
        return True

    def remove_relationship(self, relationship: Relationship) -> bool:
        """Removes the first relationship structurally equal to the given one."""
        with self._lock:
            try:
                self._relationships.remove(relationship)
            except ValueError:
                return False
        return True

    def relationships_by_entity(self, entity: str) -> List[Relationship]:
        return [
            r for r in self.relationships if entity in r.root_ids or entity in r.related_ids
        ]

    def relationships_by_type(self, rel_type: RelationshipType) -> List[Relationship]:
        return [r for r in self.relationships if r.type is rel_type]

    def finalize_relationships(self) -> None:
        """Merges relationships with the same type and identical related ids, uniting their roots.

        Relationships that differ in type or in a single related id stay separate; there is no
        absorption of subsets.
        """
        with self._lock:
            merged: Dict[Tuple[RelationshipType, FrozenSet[str]], FrozenSet[str]] = {}
            for relationship in self._relationships:
                key = (relationship.type, relationship.related_ids)
                merged[key] = merged.get(key, frozenset()) | relationship.root_ids
            before = len(self._relationships)
            self._relationships = [
                Relationship(rel_type, roots, related)
                for (rel_type, related), roots in merged.items()
            ]
        logger.debug(f"Finalized {before} relationships into {len(self._relationships)}")

    def build_from_inventory(self, inventory: Inventory) -> None:
        """Derives relationships from the marker cells of the inventory's artifacts.

        An artifact column named after an asset id holds a marker token for the relationship
        between the artifact and that asset. DESCRIBES points from the artifact to the asset,
        every other type from the asset to the artifact. Columns that do not name an asset of
        the inventory are ignored.
        """
        asset_ids = {asset.asset_id for asset in inventory.assets if asset.asset_id}
        for artifact in inventory.artifacts:
            artifact_entity = entity_id(artifact)
            for column, marker in artifact.items():
                if column not in asset_ids:
                    continue
                rel_type = RelationshipType.from_marker(marker)
                if rel_type is None:
                    logger.debug(
                        f"Unknown relationship marker '{marker}' for {artifact_entity} and {column}"
                    )
                    continue
                if rel_type is RelationshipType.DESCRIBES:
                    self.add_relationship(Relationship.of(rel_type, [artifact_entity], [column]))
                else:
                    self.add_relationship(Relationship.of(rel_type, [column], [artifact_entity]))
        self.finalize_relationships()

    def apply_to_inventory(self, inventory: Inventory) -> None:
        """Writes the relationships back as marker cells of the inventory's artifacts."""
        artifacts = {entity_id(a): a for a in inventory.artifacts}
        asset_ids = {asset.asset_id for asset in inventory.assets}
        for relationship in self.relationships:
            if relationship.type is RelationshipType.DESCRIBES:
                pairs = [(r, a) for r in relationship.root_ids for a in relationship.related_ids]
            else:
                pairs = [(r, a) for a in relationship.root_ids for r in relationship.related_ids]
            for artifact_entity, asset_id in pairs:
                artifact = artifacts.get(artifact_entity)
                if artifact is None or asset_id not in asset_ids:
                    continue
                artifact.set(asset_id, relationship.type.marker)

    def to_graph(self) -> nx.MultiDiGraph:
        """Projects the relationships onto a graph with one edge per root/related pair."""
        graph = nx.MultiDiGraph()
        for relationship in self.relationships:
            for root in relationship.root_ids:
                for related in relationship.related_ids:
                    graph.add_edge(root, related, key=relationship.type.name)
        return graph
