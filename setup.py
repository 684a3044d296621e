# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT

from setuptools import find_packages, setup

setup(
    name="sediment",
    version="0.1.0",
    description="Builds software inventories of directory trees, archives and package databases",
    license="MIT",
    python_requires=">=3.9",
    packages=find_packages(include=["sediment", "sediment.*"]),
    install_requires=[
        "click>=8.0",  # Command line interface
        "dataclasses-json>=0.5.7",  # Inventory (de)serialization
        "loguru",  # Logging
        "networkx>=2.6",  # Relationship graphs
        "pluggy",  # Plugin management
        "rarfile>=4.0",  # RAR archive extraction
        "rpmfile",  # RPM payload extraction
        "tomlkit>=0.11",  # Settings file that keeps comments and formatting
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "sediment=sediment.__main__:main",
        ],
    },
)
