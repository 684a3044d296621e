# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from typing import Dict, Iterable, List, Optional, Tuple

LIST_SEPARATOR = ", "


def is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


class AttributeBag:
    """Ordered string attributes keyed by column name.

    Blank values are never stored: setting a key to ``None`` or an empty string removes it, so
    "absent" and "blank" are the same state. Insertion order is kept, which preserves the
    column order of persisted documents.
    """

    def __init__(self, attributes: Optional[Dict[str, str]] = None):
        self._attributes: Dict[str, str] = {}
        if attributes:
            for key, value in attributes.items():
                self.set(key, value)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._attributes.get(key, default)

    def set(self, key: str, value: Optional[str]) -> None:
        if is_blank(value):
            self._attributes.pop(key, None)
        else:
            self._attributes[key] = str(value)

    def remove(self, key: str) -> None:
        self._attributes.pop(key, None)

    def has(self, key: str) -> bool:
        return key in self._attributes

    def __contains__(self, key: str) -> bool:
        return key in self._attributes

    def keys(self) -> List[str]:
        return list(self._attributes.keys())

    def items(self) -> List[Tuple[str, str]]:
        return list(self._attributes.items())

    def attributes(self) -> Dict[str, str]:
        """Returns a copy of the attributes as a plain dictionary."""
        return dict(self._attributes)

    def get_list(self, key: str, separator: str = LIST_SEPARATOR) -> List[str]:
        """Returns the value split into its non-blank elements."""
        value = self.get(key)
        if value is None:
            return []
        return [v.strip() for v in value.split(separator.strip() or separator) if v.strip()]

    def set_list(self, key: str, values: Iterable[str], separator: str = LIST_SEPARATOR) -> None:
        self.set(key, separator.join(v for v in values if not is_blank(v)))

    def get_bool(self, key: str) -> bool:
        value = self.get(key)
        return value is not None and value.strip().lower() in ("true", "yes", "x", "1")

    def append(self, key: str, value: Optional[str], separator: str = LIST_SEPARATOR) -> None:
        """Appends each element of value that is not already part of the list held by key."""
        if is_blank(value):
            return
        current = self.get_list(key, separator)
        for element in str(value).split(separator.strip() or separator):
            element = element.strip()
            if element and element not in current:
                current.append(element)
        self.set_list(key, current, separator)

    def merge(self, other: "AttributeBag") -> None:
        """Fills every attribute that is blank here with the value from other."""
        for key, value in other.items():
            if not self.has(key):
                self.set(key, value)

    def copy(self):
        return type(self)(self.attributes())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._attributes!r})"
