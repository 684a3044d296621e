# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from typing import Iterable, List, Optional, Set

from loguru import logger

from sediment.inventory import Artifact, ComponentPatternData, Inventory, RelationshipType
from sediment.pathresolver import PathResolver, ResolverStatus, SymlinkTableError
from sediment.scan.context import FoundComponent, ScanContext
from sediment.utils.globs import is_selected
from sediment.utils.paths import is_within, normalize_path, relative_to


def component_artifact(cpd: ComponentPatternData, logical_dir: str) -> Artifact:
    """The logical artifact standing for the files matched by a component pattern."""
    artifact = Artifact()
    artifact.id = cpd.component_part
    artifact.set(Artifact.COMPONENT, cpd.component_name)
    artifact.version = cpd.component_version
    artifact.checksum = cpd.version_anchor_checksum
    artifact.set(Artifact.TYPE, cpd.get(ComponentPatternData.TYPE))
    artifact.set(Artifact.COMPONENT_SOURCE_TYPE, cpd.get(ComponentPatternData.COMPONENT_SOURCE_TYPE))
    artifact.set(Artifact.GROUP_ID, cpd.get(Artifact.GROUP_ID))
    artifact.set(Artifact.LICENSE, cpd.get(Artifact.LICENSE))
    artifact.add_root_path(logical_dir or ".")
    return artifact


def mark_asset_chain(artifact: Artifact, asset_chain: List[str]) -> None:
    if asset_chain:
        artifact.set(asset_chain[-1], RelationshipType.CONTAINS.marker)
        artifact.set(Artifact.ASSET_ID_CHAIN, ", ".join(asset_chain))


def _add_pattern(inventory: Inventory, cpd: ComponentPatternData) -> None:
    if all(existing.qualifier() != cpd.qualifier() for existing in inventory.component_patterns):
        inventory.component_patterns.append(cpd)


def apply_reference_patterns(context: ScanContext, patterns: Iterable[ComponentPatternData]) -> Set[str]:
    """Collapses the files matched by reference component patterns into component artifacts.

    Returns:
        Set[str]: Logical directories claimed by a reference pattern.
    """
    claimed: Set[str] = set()
    for cpd in patterns:
        try:
            cpd.validate()
        except ValueError as e:
            logger.warning(f"Ignoring reference component pattern: {e}")
            continue
        anchor = normalize_path(cpd.version_anchor)
        for artifact in context.file_artifacts:
            if cpd.version_anchor_checksum not in ("*", artifact.checksum):
                continue
            for root_path in artifact.root_paths:
                if root_path != anchor and not root_path.endswith("/" + anchor):
                    continue
                base = root_path[: -len(anchor)].rstrip("/")
                if base in claimed:
                    continue
                claimed.add(base)
                covered = [
                    path
                    for candidate in context.file_artifacts
                    for path in candidate.root_paths
                    if is_within(path, base)
                    and is_selected(relative_to(path, base), cpd.include_patterns, cpd.exclude_patterns)
                ]
                logger.debug(f"Reference pattern {cpd.qualifier()} covers {len(covered)} files in {base or '.'}")
                remove_covered(context, set(covered))
                component = component_artifact(cpd, base)
                if cpd.version_anchor_checksum == "*":
                    component.checksum = artifact.checksum
                context.add_artifact(component)
                _add_pattern(context.inventory, cpd)
    return claimed


def apply_contributions(context: ScanContext, claimed: Optional[Set[str]] = None) -> None:
    """Turns contributor results into component artifacts and drops the files they cover."""
    claimed = claimed or set()
    covered: Set[str] = set()
    for found in sorted(context.components, key=lambda f: f.logical_dir):
        if found.logical_dir in claimed:
            logger.debug(f"{found.logical_dir} already matched by a reference component pattern")
            continue
        cpd = found.contribution.pattern
        try:
            cpd.validate()
        except ValueError as e:
            logger.warning(f"Ignoring component found in {found.logical_dir or '.'}: {e}")
            continue
        for relative in found.contribution.covered_files:
            path = normalize_path(found.logical_dir, relative)
            if path and not path.startswith("../") and path != "..":
                covered.add(path)
        _add_pattern(context.inventory, cpd)
        context.add_artifact(_component_with_expansion(context, found))
    remove_covered(context, covered)


def _component_with_expansion(context: ScanContext, found: FoundComponent) -> Artifact:
    cpd = found.contribution.pattern
    component = component_artifact(cpd, found.logical_dir)
    mark_asset_chain(component, found.asset_chain)
    expansion = found.contribution.expansion
    if not expansion:
        return component
    asset_id = f"AID-{component.id}-{component.checksum}"
    context.register_asset(asset_id, component.id, found.logical_dir or ".", "Component")
    component.set(asset_id, RelationshipType.DESCRIBES.marker)
    anchor_path = normalize_path(found.logical_dir, cpd.version_anchor)
    for declared in expansion:
        declared.set(asset_id, RelationshipType.CONTAINS.marker)
        declared.set(Artifact.SOURCE_PROJECT, anchor_path)
        context.add_artifact(declared)
    logger.debug(f"{component.id} declares {len(expansion)} further artifacts")
    return component


def remove_covered(context: ScanContext, covered: Set[str]) -> None:
    """Removes covered locations from file artifacts; artifacts left without a location are dropped."""
    if not covered:
        return
    for artifact in context.file_artifacts:
        root_paths = artifact.root_paths
        remaining = [p for p in root_paths if p not in covered]
        if len(remaining) == len(root_paths):
            continue
        if remaining:
            artifact.set_list(Artifact.ROOT_PATHS, remaining)
            if artifact.get(Artifact.ARTIFACT_PATH) not in remaining:
                artifact.set(Artifact.ARTIFACT_PATH, remaining[0])
        else:
            context.remove_file_artifact(artifact)


def alias_symlinks(context: ScanContext, max_depth: Optional[int] = None) -> None:
    """Adds the locations of symbolic links as further root paths of the content they reach."""
    if not context.symlinks:
        return
    try:
        resolver = PathResolver(context.symlinks, max_depth)
    except SymlinkTableError as e:
        logger.warning(f"Symbolic links are not considered: {e}")
        return
    by_path = {}
    for artifact in context.file_artifacts:
        for root_path in artifact.root_paths:
            by_path[root_path] = artifact
    for link in sorted(context.symlinks):
        resolved, status = resolver.resolve(link)
        if status is not ResolverStatus.DONE:
            logger.debug(f"Symbolic link {link} not resolved: {status.name}")
            continue
        link_path = link.lstrip("/")
        target = resolved.lstrip("/")
        if target in by_path:
            by_path[target].add_root_path(link_path)
            continue
        # a link to a directory stands for everything below it
        prefix = target + "/"
        for path, artifact in list(by_path.items()):
            if target and path.startswith(prefix):
                artifact.add_root_path(link_path + "/" + path[len(prefix) :])
