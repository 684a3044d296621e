# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import importlib.metadata
import sys

import click
from loguru import logger

from sediment.cmd.aggregate import aggregate
from sediment.cmd.config import config
from sediment.cmd.merge import merge_command
from sediment.cmd.relationships import relationships
from sediment.cmd.resolve import resolve
from sediment.cmd.scan import scan


@click.group()
@click.version_option(
    importlib.metadata.version("sediment"),
    "--version",
    "-v",
    message="%(version)s",
)
@click.option(
    "--log-level",
    type=click.Choice(
        ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"],
        case_sensitive=False,
    ),
    default="INFO",
)
def main(log_level="INFO"):
    # Can't change the logging level; need to remove and add a new logger with the desired log level
    logger.remove()
    logger.add(sys.stderr, level=log_level)


main.add_command(scan)
main.add_command(merge_command)
main.add_command(relationships)
main.add_command(aggregate)
main.add_command(resolve)
main.add_command(config)


if __name__ == "__main__":
    main()
