import sys

import click
from loguru import logger

from sediment.inventory import Inventory, InventoryReadError, read_inventory, write_inventory
from sediment.merge import MergeConfigError, MergeEngine


@click.command("merge")
@click.argument("inventory_outfile", type=click.Path(dir_okay=False, writable=True))
@click.argument("input_inventories", type=click.Path(exists=True, dir_okay=False), nargs=-1, required=True)
@click.option(
    "--target",
    type=click.Path(exists=True, dir_okay=False),
    help="Inventory to merge into; by default the inputs are merged into an empty inventory",
)
@click.option(
    "--excluded-attribute",
    "excluded_attributes",
    multiple=True,
    help="Attribute cleared before duplicates are detected; replaces the configured set",
)
@click.option(
    "--merge-attribute",
    "merge_attributes",
    multiple=True,
    help="Attribute whose values are combined on merged duplicates; replaces the configured set",
)
def merge_command(inventory_outfile, input_inventories, target, excluded_attributes, merge_attributes):
    """Merge INPUT_INVENTORIES, in order, into one inventory written to INVENTORY_OUTFILE."""
    try:
        engine = MergeEngine(
            excluded_attributes=list(excluded_attributes) or None,
            merge_attributes=list(merge_attributes) or None,
        )
        merged = read_inventory(target) if target else Inventory()
        sources = [read_inventory(path) for path in input_inventories]
    except (MergeConfigError, InventoryReadError) as e:
        logger.error(str(e))
        sys.exit(1)
    engine.merge_inventories(sources, merged)
    write_inventory(merged, inventory_outfile)
