# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import pathlib
from typing import Optional

from pluggy import HookspecMarker

from sediment.contributors.base import ComponentContribution

hookspec = HookspecMarker("sediment")


@hookspec(firstresult=True)
def contribute_component(
    directory: pathlib.Path, relative_path: str
) -> Optional[ComponentContribution]:
    """Recognize a software component anchored in a directory. The first contributor returning a
    result wins; return `None` when the directory does not hold a component this plugin knows.

    Args:
        directory (pathlib.Path): The physical directory to inspect.
        relative_path (str): The logical location of the directory within the scanned tree
            ("" for the root). Exploded archives appear as `[name]` segments.

    Returns:
        Optional[ComponentContribution]: The component pattern, the files it covers (relative to
        the directory) and any artifacts the component declares.
    """


@hookspec(firstresult=True)
def identify_archive_type(filepath: str) -> Optional[str]:
    """Determine whether the file is an archive that can be unpacked, based on its content.

    Args:
        filepath (str): The path to the file to inspect.

    Returns:
        Optional[str]: A string identifying the archive format (e.g. "ZIP"), or None.
    """


@hookspec(firstresult=True)
def unpack_archive(filepath: str, archive_type: str, output_dir: str) -> Optional[bool]:
    """Extract an archive into output_dir.

    Args:
        filepath (str): The path to the archive.
        archive_type (str): The format returned by `identify_archive_type`.
        output_dir (str): Existing, empty directory to extract into.

    Returns:
        Optional[bool]: True on success. Return None if the format is not handled by this plugin.
        Failures are reported by raising an exception.
    """


@hookspec
def short_name() -> Optional[str]:
    """A short name to register the hook as.

    Returns:
        Optional[str]: The name to register the hook with.
    """


@hookspec
def init_hook(command_name: Optional[str] = None) -> None:
    """Initialization hook, called by a command before it starts working.

    Args:
        command_name (Optional[str]): The name of the command calling the hook.
    """
