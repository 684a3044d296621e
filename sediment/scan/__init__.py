# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from .engine import ScanEngine
from .params import ScanParam

__all__ = ["ScanEngine", "ScanParam"]
