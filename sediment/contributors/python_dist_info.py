# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import csv
import pathlib
from email.parser import HeaderParser
from typing import List, Optional

from loguru import logger

import sediment.plugin
from sediment.contributors.base import ComponentContribution, make_contribution
from sediment.utils.paths import normalize_path

METADATA = "METADATA"
RECORD = "RECORD"


def read_record(path: pathlib.Path) -> List[str]:
    """Installed files listed in a RECORD file, relative to the directory holding the dist-info."""
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return [row[0] for row in csv.reader(f) if row and row[0]]
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        logger.warning(f"Unable to read {path}: {e}")
        return []


@sediment.plugin.hookimpl
def contribute_component(
    directory: pathlib.Path, relative_path: str
) -> Optional[ComponentContribution]:
    if not directory.name.endswith(".dist-info") or not (directory / METADATA).is_file():
        return None
    try:
        with open(directory / METADATA, "r", encoding="utf-8") as f:
            metadata = HeaderParser().parse(f)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Unable to read {directory / METADATA}: {e}")
        return None
    name = metadata.get("Name")
    if not name:
        return None

    contribution = make_contribution(
        directory,
        anchor=METADATA,
        name=name,
        version=metadata.get("Version"),
        component_type="python-module",
        source_type="python",
    )
    contribution.pattern.set("License", metadata.get("License"))
    # RECORD paths are relative to the site-packages directory, one level up
    installed = [normalize_path("..", path) for path in read_record(directory / RECORD)]
    own = set(contribution.covered_files)
    contribution.covered_files.extend(
        path for path in installed if path not in own and not path.startswith(f"../{directory.name}/")
    )
    logger.debug(f"python distribution {name} found in {relative_path or '.'}")
    return contribution


@sediment.plugin.hookimpl
def short_name() -> Optional[str]:
    return "python"
