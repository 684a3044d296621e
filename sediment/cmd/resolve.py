import json
import sys

import click
from loguru import logger

from sediment.pathresolver import PathResolver, SymlinkTableError


@click.command("resolve")
@click.argument("symlink_table", type=click.File("r"))
@click.argument("paths", nargs=-1, required=True)
@click.option("--max-depth", type=click.IntRange(min=1), help="Link substitutions before giving up")
def resolve(symlink_table, paths, max_depth):
    """Resolve absolute PATHS through SYMLINK_TABLE, a JSON object mapping link paths to targets.

    Prints one line per path: the status and the resolved path.
    """
    try:
        table = json.load(symlink_table)
        if not isinstance(table, dict):
            raise SymlinkTableError("symlink table must be a JSON object")
        resolver = PathResolver(table, max_depth)
    except (json.JSONDecodeError, SymlinkTableError) as e:
        logger.error(f"Invalid symlink table: {e}")
        sys.exit(1)
    for path in paths:
        try:
            resolved, status = resolver.resolve(path)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="PATHS") from e
        click.echo(f"{status.name}\t{resolved}")
