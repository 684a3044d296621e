# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from typing import Optional

from ._attributes import AttributeBag


class Asset(AttributeBag):
    """A top-level scanned subject, such as a container image or an unpacked archive."""

    ASSET_ID = "Asset Id"
    NAME = "Name"
    PATH = "Path"
    TYPE = "Type"
    ASSESSMENT = "Assessment"

    @property
    def asset_id(self) -> Optional[str]:
        return self.get(self.ASSET_ID)


class LicenseData(AttributeBag):
    CANONICAL_NAME = "Canonical Name"
    SPDX_ID = "SPDX Id"
    COMMERCIAL = "Commercial"
    COPYLEFT_TYPE = "Copyleft Type"

    @property
    def canonical_name(self) -> Optional[str]:
        return self.get(self.CANONICAL_NAME)

    @property
    def spdx_id(self) -> Optional[str]:
        return self.get(self.SPDX_ID)


class InventoryInfo(AttributeBag):
    """A row of the "Info" sheet describing the inventory itself."""

    ID = "Id"

    @property
    def id(self) -> Optional[str]:
        return self.get(self.ID)
