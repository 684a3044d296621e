# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional


class RelationshipType(Enum):
    """Relationship types and the marker token that denotes them in an inventory cell."""

    DESCRIBES = "x"
    CONTAINS = "c"
    HAS_RUNTIME_DEPENDENCY = "r"
    HAS_DEVELOPMENT_DEPENDENCY = "d"
    HAS_PEER_DEPENDENCY = "p"
    HAS_OPTIONAL_DEPENDENCY = "o"

    @property
    def marker(self) -> str:
        return self.value

    @classmethod
    def from_marker(cls, marker: Optional[str]) -> Optional["RelationshipType"]:
        if marker is None:
            return None
        try:
            return cls(marker.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class Relationship:
    type: RelationshipType
    root_ids: FrozenSet[str]
    related_ids: FrozenSet[str]

    @classmethod
    def of(
        cls, rel_type: RelationshipType, root_ids: Iterable[str], related_ids: Iterable[str]
    ) -> "Relationship":
        return cls(rel_type, frozenset(root_ids), frozenset(related_ids))

    def is_empty(self) -> bool:
        return not self.root_ids or not self.related_ids

    def __str__(self) -> str:
        roots = ", ".join(sorted(self.root_ids))
        related = ", ".join(sorted(self.related_ids))
        return f"[{roots}] {self.type.name} [{related}]"
