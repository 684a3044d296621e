# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import functools
import re
from typing import Iterable, Optional, Pattern


@functools.lru_cache(maxsize=1024)
def compile_glob(pattern: str) -> Pattern[str]:
    """Translate an Ant-style glob into a regular expression.

    ``**`` matches any number of path segments (including none), ``*`` matches within a single
    segment and ``?`` matches one character other than ``/``. A pattern without a slash matches
    the file name at any depth, the way ``*.jar`` is commonly meant.
    """
    pattern = pattern.strip().replace("\\", "/")
    while pattern.startswith("./"):
        pattern = pattern[2:]
    pattern = pattern.lstrip("/")
    if pattern.endswith("/"):
        pattern += "**"
    if "/" not in pattern and pattern != "**":
        pattern = "**/" + pattern

    regex = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            regex.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            regex.append(".*")
            i += 2
        elif pattern[i] == "*":
            regex.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            regex.append("[^/]")
            i += 1
        else:
            regex.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(regex) + r"\Z")


def matches(path: str, pattern: str) -> bool:
    return compile_glob(pattern).match(path) is not None


def matches_any(path: str, patterns: Optional[Iterable[str]]) -> bool:
    if not patterns:
        return False
    return any(matches(path, p) for p in patterns if p.strip())


def is_selected(path: str, includes: Optional[Iterable[str]], excludes: Optional[Iterable[str]]) -> bool:
    """True when path matches at least one include and none of the excludes."""
    return matches_any(path, includes) and not matches_any(path, excludes)
