# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from dataclasses import dataclass, field
from typing import List, Optional

from sediment.configmanager import ConfigManager
from sediment.utils.globs import is_selected

# pylint: disable=too-many-instance-attributes


@dataclass
class ScanParam:
    """Settings of a single scan.

    Globs are Ant-style and evaluated against logical paths relative to the scan root.
    """

    collect_includes: List[str] = field(default_factory=lambda: ["**/*"])
    collect_excludes: List[str] = field(default_factory=list)
    unpack_includes: List[str] = field(default_factory=lambda: ["**/*"])
    unpack_excludes: List[str] = field(default_factory=list)
    implicit_unpack: bool = True
    detect_component_patterns: bool = True
    include_embedded: bool = True
    workers: Optional[int] = None

    def __post_init__(self):
        if self.workers is None:
            self.workers = int(ConfigManager().get("scan", "workers", 4))
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")

    def collects(self, logical_path: str) -> bool:
        return is_selected(logical_path, self.collect_includes, self.collect_excludes)

    def unpacks(self, logical_path: str) -> bool:
        return self.implicit_unpack and is_selected(
            logical_path, self.unpack_includes, self.unpack_excludes
        )
