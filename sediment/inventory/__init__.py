# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from ._artifact import Artifact
from ._asset import Asset, InventoryInfo, LicenseData
from ._attributes import AttributeBag, is_blank
from ._inventory import Inventory
from ._io import InventoryReadError, load_reference_inventory, read_inventory, write_inventory
from ._pattern import ComponentPatternData
from ._relationship import Relationship, RelationshipType

__all__ = [
    "Artifact",
    "Asset",
    "AttributeBag",
    "ComponentPatternData",
    "Inventory",
    "InventoryInfo",
    "InventoryReadError",
    "LicenseData",
    "Relationship",
    "RelationshipType",
    "is_blank",
    "load_reference_inventory",
    "read_inventory",
    "write_inventory",
]
