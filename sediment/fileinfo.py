# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from hashlib import md5, sha1, sha256
from typing import Dict, Optional


def calc_file_hashes(filename) -> Optional[Dict[str, str]]:
    """Calculate hashes for a file specified.

    Args:
        filename (str): Name of file.

    Returns:
        Optional[dict]: Dictionary with the md5, sha1 and sha256 hashes of the file, or None if
        the file does not exist.
    """
    sha256_hash = sha256()
    sha1_hash = sha1()
    md5_hash = md5()
    b = bytearray(65536)
    mv = memoryview(b)
    try:
        with open(filename, "rb", buffering=0) as f:
            while n := f.readinto(mv):
                sha256_hash.update(mv[:n])
                sha1_hash.update(mv[:n])
                md5_hash.update(mv[:n])
    except FileNotFoundError:
        return None
    return {
        "md5": md5_hash.hexdigest(),
        "sha1": sha1_hash.hexdigest(),
        "sha256": sha256_hash.hexdigest(),
    }


def calc_md5(filename) -> Optional[str]:
    hashes = calc_file_hashes(filename)
    return hashes["md5"] if hashes else None
