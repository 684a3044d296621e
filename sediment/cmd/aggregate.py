import json

import click

from sediment.aggregator import Aggregator
from sediment.inventory import InventoryReadError, read_inventory


@click.command("aggregate")
@click.argument("inventory_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("root_dir", type=click.Path(exists=True, file_okay=False))
@click.argument("scratch_dir", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--output",
    "output_file",
    type=click.File("w"),
    default="-",
    help="Where to write the coverage report as JSON (default: stdout)",
)
@click.option("--allow-duplicate", "allowed", multiple=True, help="Glob of files artifacts may share")
def aggregate(inventory_file, root_dir, scratch_dir, output_file, allowed):
    """Report the files covered by each artifact of INVENTORY_FILE, a scan of ROOT_DIR that
    unpacked archives to SCRATCH_DIR. Exits with status 2 if artifacts share files unexpectedly."""
    try:
        inventory = read_inventory(inventory_file)
    except InventoryReadError as e:
        raise click.ClickException(str(e)) from e
    aggregator = Aggregator(root_dir, scratch_dir, list(allowed) or None)
    coverages = aggregator.aggregate(inventory)
    report = [
        {
            "artifact": str(c.artifact),
            "exclusive": c.exclusive,
            "allowed_duplicates": c.allowed_duplicates,
            "duplicates": c.duplicates,
            "errors": c.artifact.errors,
        }
        for c in coverages
    ]
    json.dump(report, output_file, indent=2)
    output_file.write("\n")
    if any(c.duplicates for c in coverages):
        raise SystemExit(2)
