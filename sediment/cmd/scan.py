import sys
import tempfile

import click
from loguru import logger

from sediment.configmanager import ConfigManager
from sediment.inventory import Inventory, InventoryReadError, load_reference_inventory, write_inventory
from sediment.plugin.manager import call_init_hooks, get_plugin_manager
from sediment.scan import ScanEngine, ScanParam


def _patterns(values):
    patterns = []
    for value in values:
        patterns.extend(p.strip() for p in value.split(",") if p.strip())
    return patterns


@click.command("scan")
@click.argument("root_dir", type=click.Path(exists=True, file_okay=False))
@click.argument("inventory_outfile", type=click.Path(dir_okay=False, writable=True))
@click.option(
    "--scratch-dir",
    type=click.Path(file_okay=False),
    help="Empty directory to unpack archives into (default: a new temporary directory)",
)
@click.option(
    "--reference",
    "references",
    multiple=True,
    type=click.Path(exists=True),
    help="Reference inventory file or directory of inventory files; may be repeated",
)
@click.option("--include", "includes", multiple=True, help="Glob of files to collect; may be repeated")
@click.option("--exclude", "excludes", multiple=True, help="Glob of files to skip; may be repeated")
@click.option("--unpack-include", "unpack_includes", multiple=True, help="Glob of archives to unpack")
@click.option("--unpack-exclude", "unpack_excludes", multiple=True, help="Glob of archives not to unpack")
@click.option("--unpack/--no-unpack", default=True, show_default=True, help="Unpack archives found")
@click.option(
    "--detect-components/--no-detect-components",
    default=True,
    show_default=True,
    help="Collapse the files of recognized components (npm, cargo, python, maven, rpm) into one artifact",
)
@click.option(
    "--include-embedded/--no-include-embedded",
    default=True,
    show_default=True,
    help="Also recognize components inside unpacked archives",
)
@click.option("--workers", type=click.IntRange(min=1), help="Number of directories scanned in parallel")
# pylint: disable-next=too-many-arguments,too-many-positional-arguments
def scan(
    root_dir,
    inventory_outfile,
    scratch_dir,
    references,
    includes,
    excludes,
    unpack_includes,
    unpack_excludes,
    unpack,
    detect_components,
    include_embedded,
    workers,
):
    """Scan ROOT_DIR and write the inventory of what was found to INVENTORY_OUTFILE."""
    try:
        reference = load_reference_inventory(references) if references else Inventory()
    except InventoryReadError as e:
        logger.error(f"Cannot scan without the reference inventory: {e}")
        sys.exit(1)

    if scratch_dir is None:
        base_dir = ConfigManager().get("scan", "scratch_dir", None)
        scratch_dir = tempfile.mkdtemp(prefix="sediment-scan-", dir=base_dir)
        logger.info(f"Unpacking archives to {scratch_dir}")

    param = ScanParam(
        collect_includes=_patterns(includes) or ["**/*"],
        collect_excludes=_patterns(excludes),
        unpack_includes=_patterns(unpack_includes) or ["**/*"],
        unpack_excludes=_patterns(unpack_excludes),
        implicit_unpack=unpack,
        detect_component_patterns=detect_components,
        include_embedded=include_embedded,
        workers=workers,
    )
    pm = get_plugin_manager()
    call_init_hooks(pm, command_name="scan")
    try:
        inventory = ScanEngine(param, reference, pm).scan(root_dir, scratch_dir)
    except (OSError, ValueError) as e:
        logger.error(f"Scan failed: {e}")
        sys.exit(1)
    write_inventory(inventory, inventory_outfile)
