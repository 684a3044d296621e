# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import pathlib
import posixpath
from typing import List, Optional, Union


def normalize_path(*path_parts: Union[str, pathlib.PurePath]) -> str:
    """
    Normalize one or more path parts into a single POSIX-style logical path.

    Backslashes in string parts are treated as separators, ``.`` and ``..`` segments are folded,
    and the result never carries a leading ``./`` or a trailing slash.

    Args:
        *path_parts: One or more path components, strings or PurePath objects.

    Returns:
        str: POSIX-style normalized path, "" for an empty path.
    """
    cleaned_parts = [
        str(p).replace("\\", "/") if isinstance(p, str) else p.as_posix() for p in path_parts
    ]
    cleaned_parts = [p for p in cleaned_parts if p]
    if not cleaned_parts:
        return ""
    normalized = posixpath.normpath(posixpath.join(*cleaned_parts))
    return "" if normalized == "." else normalized


def unpack_dir_name(archive_name: str) -> str:
    """Name of the folder holding the exploded content of an archive, e.g. ``[app.jar]``."""
    return f"[{archive_name}]"


def is_unpack_dir_name(name: str) -> bool:
    return len(name) > 2 and name.startswith("[") and name.endswith("]")


def archive_name_of(unpack_dir: str) -> Optional[str]:
    name = posixpath.basename(unpack_dir)
    if not is_unpack_dir_name(name):
        return None
    return name[1:-1]


def innermost_unpack_dir(logical_path: str) -> Optional[str]:
    """Returns the prefix of logical_path up to and including its last ``[archive]`` segment."""
    segments = logical_path.split("/")
    for index in range(len(segments) - 1, -1, -1):
        if is_unpack_dir_name(segments[index]):
            return "/".join(segments[: index + 1])
    return None


def parent_dirs(logical_path: str) -> List[str]:
    """All ancestors of a logical path, nearest first, ending with "" for the root."""
    parents = []
    while logical_path:
        logical_path = posixpath.dirname(logical_path)
        parents.append(logical_path)
    return parents


def is_within(logical_path: str, directory: str) -> bool:
    return not directory or logical_path == directory or logical_path.startswith(directory + "/")


def relative_to(logical_path: str, directory: str) -> str:
    if not directory:
        return logical_path
    if logical_path == directory:
        return ""
    return logical_path[len(directory) + 1 :]
