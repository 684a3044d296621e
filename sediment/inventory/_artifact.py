# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from typing import List, Optional

from ._attributes import AttributeBag, is_blank

# pylint: disable=too-many-public-methods


class Artifact(AttributeBag):
    """A single logical software unit: a file, an archive or a detected component."""

    ID = "Id"
    CHECKSUM = "Checksum"
    VERSION = "Version"
    GROUP_ID = "Group Id"
    CLASSIFIER = "Classifier"
    TYPE = "Type"
    COMPONENT = "Component"
    CLASSIFICATION = "Classification"
    LICENSE = "License"
    LATEST_VERSION = "Latest Version"
    VERIFIED = "Verified"
    URL = "URL"
    PURL = "PURL"
    COMMENT = "Comment"
    SECURITY_RELEVANCE = "Security Relevance"
    SECURITY_CATEGORY = "Security Category"
    ROOT_PATHS = "Root Paths"
    PROJECTS = "Projects"
    SOURCE_PROJECT = "Source Project"
    ERRORS = "Errors"
    ARTIFACT_PATH = "Artifact Path"
    ARCHIVE_PATH = "Archive Path"
    HASH_SHA1 = "Hash (SHA-1)"
    HASH_SHA256 = "Hash (SHA-256)"
    COMPONENT_SOURCE_TYPE = "Component Source Type"
    WILDCARD_MATCH = "WILDCARD-MATCH"
    ASSET_ID_CHAIN = "Asset Id Chain"

    @property
    def id(self) -> Optional[str]:
        return self.get(self.ID)

    @id.setter
    def id(self, value: Optional[str]) -> None:
        self.set(self.ID, value)

    @property
    def checksum(self) -> Optional[str]:
        return self.get(self.CHECKSUM)

    @checksum.setter
    def checksum(self, value: Optional[str]) -> None:
        self.set(self.CHECKSUM, value)

    @property
    def version(self) -> Optional[str]:
        return self.get(self.VERSION)

    @version.setter
    def version(self, value: Optional[str]) -> None:
        self.set(self.VERSION, value)

    @property
    def classifier(self) -> Optional[str]:
        return self.get(self.CLASSIFIER)

    @property
    def type(self) -> Optional[str]:
        return self.get(self.TYPE)

    @property
    def component(self) -> Optional[str]:
        return self.get(self.COMPONENT)

    @property
    def artifact_id(self) -> Optional[str]:
        """The id without its version part, e.g. ``commons-io`` for ``commons-io-2.11.0.jar``."""
        artifact_id = self.id
        version = self.version
        if artifact_id is None or is_blank(version):
            return artifact_id
        index = artifact_id.rfind(version)
        if index <= 0:
            return artifact_id
        artifact_id = artifact_id[:index]
        while artifact_id and artifact_id[-1] in "-_":
            artifact_id = artifact_id[:-1]
        return artifact_id

    @property
    def root_paths(self) -> List[str]:
        return self.get_list(self.ROOT_PATHS)

    def add_root_path(self, path: str) -> None:
        self.append(self.ROOT_PATHS, path)

    def remove_root_path(self, path: str) -> None:
        self.set_list(self.ROOT_PATHS, [p for p in self.root_paths if p != path])

    @property
    def errors(self) -> List[str]:
        return self.get_list(self.ERRORS, "; ")

    def add_error(self, message: str) -> None:
        self.append(self.ERRORS, message, "; ")

    def __str__(self) -> str:
        parts = [self.id or "<no id>"]
        if self.version:
            parts.append(self.version)
        if self.checksum:
            parts.append(self.checksum)
        return "/".join(parts)
