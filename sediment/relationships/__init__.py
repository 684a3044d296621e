# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from .registry import RelationshipRegistry, entity_id

__all__ = ["RelationshipRegistry", "entity_id"]
