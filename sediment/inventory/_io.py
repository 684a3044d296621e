# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import json
import pathlib
from typing import Iterable, List, TextIO, Union

from loguru import logger

from ._inventory import Inventory

INVENTORY_SUFFIX = ".json"


class InventoryReadError(ValueError):
    """Raised when an inventory document cannot be read or does not have the expected layout."""


def read_inventory(path: Union[str, pathlib.Path]) -> Inventory:
    """Reads an inventory document.

    Args:
        path (Union[str, pathlib.Path]): Location of the JSON inventory document.

    Returns:
        Inventory: The inventory with one entry per row of each sheet.
    """
    path = pathlib.Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return load_inventory(f)
    except (OSError, json.JSONDecodeError, InventoryReadError) as e:
        raise InventoryReadError(f"Unable to read inventory {path}: {e}") from e


def load_inventory(f: TextIO) -> Inventory:
    document = json.load(f)
    if not isinstance(document, dict):
        raise InventoryReadError("expected a JSON object with one key per sheet")
    for sheet, rows in document.items():
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise InventoryReadError(f"sheet '{sheet}' must be a list of objects")
    return Inventory.from_dict(document)


def write_inventory(inventory: Inventory, path: Union[str, pathlib.Path]) -> None:
    path = pathlib.Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        dump_inventory(inventory, f)
    logger.info(f"Wrote inventory with {len(inventory.artifacts)} artifacts to {path}")


def dump_inventory(inventory: Inventory, f: TextIO) -> None:
    with inventory.lock:
        f.write(inventory.to_json(indent=2))
    f.write("\n")


def reference_inventory_files(path: Union[str, pathlib.Path]) -> List[pathlib.Path]:
    """Lists the inventory documents making up a reference inventory in load order.

    A directory is searched recursively; files are ordered by their case-folded path relative to
    the directory so that the result does not depend on the filesystem.
    """
    path = pathlib.Path(path)
    if path.is_file():
        return [path]
    if not path.is_dir():
        raise InventoryReadError(f"Reference inventory {path} does not exist")
    files = [p for p in path.rglob(f"*{INVENTORY_SUFFIX}") if p.is_file()]
    return sorted(files, key=lambda p: p.relative_to(path).as_posix().lower())


def load_reference_inventory(paths: Union[str, pathlib.Path, Iterable]) -> Inventory:
    """Loads and combines reference inventories; earlier documents win on identity conflicts.

    Raises:
        InventoryReadError: If any of the documents is missing or unreadable.
    """
    if isinstance(paths, (str, pathlib.Path)):
        paths = [paths]
    reference = Inventory()
    for path in paths:
        for inventory_file in reference_inventory_files(path):
            logger.debug(f"Loading reference inventory {inventory_file}")
            reference.inherit(read_inventory(inventory_file))
    logger.info(
        f"Reference inventory holds {len(reference.artifacts)} artifacts and "
        f"{len(reference.component_patterns)} component patterns"
    )
    return reference
