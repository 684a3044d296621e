# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from typing import List, Optional

from ._attributes import AttributeBag


class ComponentPatternData(AttributeBag):
    """A match rule that collapses the files below a version anchor into one logical artifact.

    The include and exclude patterns are comma separated Ant-style globs evaluated relative to
    the directory that contains the version anchor.
    """

    INCLUDE_PATTERN = "Include Pattern"
    EXCLUDE_PATTERN = "Exclude Pattern"
    COMPONENT_NAME = "Component Name"
    COMPONENT_PART = "Component Part"
    COMPONENT_VERSION = "Component Version"
    VERSION_ANCHOR = "Version Anchor"
    VERSION_ANCHOR_CHECKSUM = "Version Anchor Checksum"
    TYPE = "Type"
    COMPONENT_SOURCE_TYPE = "Component Source Type"
    SHARED_INCLUDE_PATTERN = "Shared Include Pattern"
    SHARED_EXCLUDE_PATTERN = "Shared Exclude Pattern"

    @property
    def component_name(self) -> Optional[str]:
        return self.get(self.COMPONENT_NAME)

    @property
    def component_part(self) -> Optional[str]:
        return self.get(self.COMPONENT_PART)

    @property
    def component_version(self) -> Optional[str]:
        return self.get(self.COMPONENT_VERSION)

    @property
    def version_anchor(self) -> Optional[str]:
        return self.get(self.VERSION_ANCHOR)

    @property
    def version_anchor_checksum(self) -> Optional[str]:
        return self.get(self.VERSION_ANCHOR_CHECKSUM)

    @property
    def include_patterns(self) -> List[str]:
        return self.get_list(self.INCLUDE_PATTERN, ",")

    @property
    def exclude_patterns(self) -> List[str]:
        return self.get_list(self.EXCLUDE_PATTERN, ",")

    @property
    def shared_include_patterns(self) -> List[str]:
        return self.get_list(self.SHARED_INCLUDE_PATTERN, ",")

    @property
    def shared_exclude_patterns(self) -> List[str]:
        return self.get_list(self.SHARED_EXCLUDE_PATTERN, ",")

    def qualifier(self) -> str:
        return ":".join(
            self.get(key) or ""
            for key in (self.COMPONENT_PART, self.COMPONENT_VERSION, self.VERSION_ANCHOR_CHECKSUM)
        )

    def validate(self) -> None:
        """Raises a ValueError naming the first required attribute that is missing."""
        for key in (
            self.INCLUDE_PATTERN,
            self.VERSION_ANCHOR,
            self.VERSION_ANCHOR_CHECKSUM,
            self.COMPONENT_PART,
        ):
            if not self.has(key):
                raise ValueError(f"Component pattern {self.qualifier()} is missing '{key}'")
