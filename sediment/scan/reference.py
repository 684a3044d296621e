# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import fnmatch
from typing import Optional, Sequence, Tuple

from loguru import logger

from sediment.inventory import Artifact, Inventory, is_blank

WILDCARD = "*"

CURATED_ATTRIBUTES = (
    Artifact.CLASSIFICATION,
    Artifact.LICENSE,
    Artifact.COMPONENT,
    Artifact.GROUP_ID,
    Artifact.URL,
    Artifact.COMMENT,
    Artifact.SECURITY_RELEVANCE,
    Artifact.SECURITY_CATEGORY,
    Artifact.VERIFIED,
)


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def _versions_compatible(scanned: Optional[str], reference: Optional[str]) -> bool:
    # a scanned file usually has no version of its own; the reference supplies it
    return is_blank(scanned) or _norm(scanned) == _norm(reference)


class MatchStrategy:
    """One way of finding the reference entry describing a scanned artifact."""

    name = "match"
    copies_version = True

    def find(self, artifact: Artifact, reference: Inventory) -> Optional[Artifact]:
        raise NotImplementedError

    def apply(self, artifact: Artifact, match: Artifact) -> None:
        """Copies the curated attributes of the reference entry that the artifact lacks."""
        for key in CURATED_ATTRIBUTES:
            if not artifact.has(key) and match.has(key):
                artifact.set(key, match.get(key))
        if self.copies_version and not artifact.has(Artifact.VERSION):
            artifact.version = match.version


class ExactMatch(MatchStrategy):
    """Same id, version, group, classifier and type; checksums must agree where both are known."""

    name = "exact"

    def find(self, artifact: Artifact, reference: Inventory) -> Optional[Artifact]:
        for candidate in reference.find_all_with_id(artifact.id):
            if candidate.version == WILDCARD:
                continue
            if not _versions_compatible(artifact.version, candidate.version):
                continue
            if any(
                _norm(artifact.get(key)) != _norm(candidate.get(key))
                for key in (Artifact.GROUP_ID, Artifact.CLASSIFIER, Artifact.TYPE)
            ):
                continue
            if (
                not is_blank(artifact.checksum)
                and not is_blank(candidate.checksum)
                and _norm(artifact.checksum) != _norm(candidate.checksum)
            ):
                continue
            return candidate
        return None


class ClassificationAgnosticMatch(MatchStrategy):
    """Same id and version, regardless of group, classifier, type and checksum."""

    name = "classification-agnostic"

    def find(self, artifact: Artifact, reference: Inventory) -> Optional[Artifact]:
        for candidate in reference.find_all_with_id(artifact.id):
            if candidate.version == WILDCARD:
                continue
            if _versions_compatible(artifact.version, candidate.version):
                return candidate
        return None


class WildcardVersionMatch(MatchStrategy):
    """Reference entries with version ``*`` whose id, possibly containing ``*``, matches.

    The most specific (longest) matching reference id wins.
    """

    name = "wildcard-version"
    copies_version = False

    def find(self, artifact: Artifact, reference: Inventory) -> Optional[Artifact]:
        if is_blank(artifact.id):
            return None
        best = None
        for candidate in reference.artifacts:
            if candidate.version != WILDCARD or is_blank(candidate.id):
                continue
            if not fnmatch.fnmatchcase(_norm(artifact.id), _norm(candidate.id)):
                continue
            if best is None or len(candidate.id) > len(best.id):
                best = candidate
        return best

    def apply(self, artifact: Artifact, match: Artifact) -> None:
        super().apply(artifact, match)
        artifact.set(Artifact.WILDCARD_MATCH, "true")


DEFAULT_STRATEGIES: Tuple[MatchStrategy, ...] = (
    ExactMatch(),
    ClassificationAgnosticMatch(),
    WildcardVersionMatch(),
)


class ReferenceMatcher:
    """Assigns known identity to scanned artifacts by trying each strategy in order."""

    def __init__(self, reference: Inventory, strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES):
        self.reference = reference
        self.strategies = list(strategies)

    def lookup(self, artifact: Artifact) -> Optional[Tuple[MatchStrategy, Artifact]]:
        for strategy in self.strategies:
            match = strategy.find(artifact, self.reference)
            if match is not None:
                return strategy, match
        return None

    def apply(self, artifact: Artifact) -> bool:
        """Returns True if the artifact was found in the reference inventory."""
        found = self.lookup(artifact)
        if found is None:
            return False
        strategy, match = found
        logger.debug(f"{artifact} matched {match} ({strategy.name})")
        strategy.apply(artifact, match)
        return True
