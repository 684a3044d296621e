# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import re
from enum import Enum, auto
from typing import Dict, Optional, Set, Tuple

from loguru import logger

from sediment.configmanager import ConfigManager

_REPEATED_SLASHES = re.compile(r"/{2,}")
_LAST_SEGMENT = re.compile(r"/[^/]*$")


class ResolverStatus(Enum):
    INFLIGHT = auto()
    DONE = auto()
    CYCLIC = auto()
    BAD_TRAVERSAL = auto()


class SymlinkTableError(ValueError):
    """Raised when a symlink table cannot be used for resolution."""


def normalize_link_path(path: str) -> str:
    """Collapse repeated slashes and drop a trailing slash (except for the root itself)."""
    path = _REPEATED_SLASHES.sub("/", path)
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path


class ResolverPathHolder:
    """Tracks the state of a single path resolution.

    Once the status leaves INFLIGHT the holder is frozen; any further attempt to change
    the path or the status raises a RuntimeError.
    """

    def __init__(self, path: str):
        self._current_path = path
        self._visited: Set[str] = set()
        self._status = ResolverStatus.INFLIGHT

    @property
    def current_path(self) -> str:
        return self._current_path

    @property
    def status(self) -> ResolverStatus:
        return self._status

    def _check_mutable(self) -> None:
        if self._status is not ResolverStatus.INFLIGHT:
            raise RuntimeError(f"Path holder is already finished with status {self._status.name}")

    def set_current_path(self, path: str) -> None:
        self._check_mutable()
        self._current_path = path

    def set_status(self, status: ResolverStatus) -> None:
        self._check_mutable()
        self._status = status

    def visit(self, path: str) -> bool:
        """Record a visited position.

        Returns:
            bool: False if the position was already visited.
        """
        self._check_mutable()
        if path in self._visited:
            return False
        self._visited.add(path)
        return True


class PathResolver:
    """Resolves absolute paths through a table of symbolic links without touching the filesystem.

    Args:
        symlinks (Dict[str, str]): Mapping of absolute link path to the raw link target, which may
            be relative to the directory containing the link.
        max_depth (Optional[int]): Maximum number of link substitutions before a resolution is
            considered cyclic. Defaults to the ``resolver.max_depth`` setting (128).
    """

    def __init__(self, symlinks: Dict[str, str], max_depth: Optional[int] = None):
        if max_depth is None:
            max_depth = ConfigManager().get("resolver", "max_depth", 128)
        if max_depth < 1:
            raise SymlinkTableError(f"max_depth must be positive, got {max_depth}")
        self.max_depth = max_depth
        self._symlinks: Dict[str, str] = {}
        for link, target in symlinks.items():
            self._validate(link, target)
            self._symlinks[normalize_link_path(link)] = target

    @staticmethod
    def _validate(link: str, target: str) -> None:
        if link is None or target is None:
            raise SymlinkTableError(f"Symlink table contains an empty entry: {link!r} -> {target!r}")
        if not link.startswith("/"):
            raise SymlinkTableError(f"Symlink path must be absolute: {link!r}")
        if "/../" in link or link.endswith("/.."):
            raise SymlinkTableError(f"Symlink path must not traverse upwards: {link!r}")
        if "\0" in link or "\0" in target:
            raise SymlinkTableError(f"Symlink entry contains a NUL character: {link!r}")

    def __len__(self) -> int:
        return len(self._symlinks)

    def resolve(self, path: str) -> Tuple[str, ResolverStatus]:
        """Resolve every symlink contained in an absolute path.

        Args:
            path (str): Absolute path to resolve.

        Returns:
            Tuple[str, ResolverStatus]: The last computed path and the outcome. The path is only
            meaningful when the status is DONE.
        """
        if not path.startswith("/"):
            raise ValueError(f"Only absolute paths can be resolved, got {path!r}")
        holder = ResolverPathHolder(path)
        for _ in range(self.max_depth):
            self._resolve_first_link(holder)
            if holder.status is not ResolverStatus.INFLIGHT:
                break
        if holder.status is ResolverStatus.INFLIGHT:
            logger.debug(f"Giving up on {path} after {self.max_depth} link substitutions")
            holder.set_status(ResolverStatus.CYCLIC)
        return holder.current_path, holder.status

    def _resolve_first_link(self, holder: ResolverPathHolder) -> None:
        """Substitute the first symlink found while walking the path from the left."""
        segments = [s for s in holder.current_path.split("/") if s and s != "."]
        resolved = "/" + "/".join(segments)
        if not holder.visit(resolved):
            holder.set_status(ResolverStatus.CYCLIC)
            return

        part = ""
        for segment in segments:
            if segment == "..":
                if len(part) < 2:
                    holder.set_status(ResolverStatus.BAD_TRAVERSAL)
                    return
                # drop "<parent>/.." from the path and keep walking from the parent
                index = part.rfind("/")
                remainder = resolved[len(part) + len("/..") :]
                resolved = resolved[:index] + remainder
                part = part[:index]
                holder.set_current_path(resolved or "/")
                continue

            part = f"{part}/{segment}"
            target = self._symlinks.get(part)
            if target is None:
                continue
            if not target.startswith("/"):
                target = _LAST_SEGMENT.sub("", part) + "/" + target
            holder.set_current_path(target + resolved[len(part) :])
            return

        holder.set_current_path(normalize_link_path(resolved) or "/")
        holder.set_status(ResolverStatus.DONE)
