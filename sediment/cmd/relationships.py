import json

import click
import networkx as nx
from loguru import logger

from sediment.inventory import InventoryReadError, read_inventory
from sediment.relationships import RelationshipRegistry


@click.command("relationships")
@click.argument("inventory_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output",
    "output_file",
    type=click.File("w"),
    default="-",
    help="Where to write the relationships as JSON (default: stdout)",
)
def relationships(inventory_file, output_file):
    """List the relationships recorded by the marker columns of INVENTORY_FILE."""
    try:
        inventory = read_inventory(inventory_file)
    except InventoryReadError as e:
        raise click.ClickException(str(e)) from e
    registry = RelationshipRegistry()
    registry.build_from_inventory(inventory)

    graph = registry.to_graph()
    cycles = list(nx.simple_cycles(nx.DiGraph(graph)))
    if cycles:
        logger.warning(f"Relationship cycle(s) detected: {cycles}")

    entries = [
        {
            "type": rel.type.name,
            "roots": sorted(rel.root_ids),
            "related": sorted(rel.related_ids),
        }
        for rel in sorted(registry.relationships, key=lambda r: (r.type.name, sorted(r.related_ids)))
    ]
    json.dump(entries, output_file, indent=2)
    output_file.write("\n")
