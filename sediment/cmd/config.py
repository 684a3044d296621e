from typing import Any, List, Optional

import click

from sediment.configmanager import ConfigManager


@click.command("config")
@click.argument("key", required=True)
@click.argument("values", nargs=-1)
def config(key: str, values: Optional[List[str]]):
    """Get or set a configuration value.

    If only KEY is provided, the current value is displayed.
    If both KEY and one or more VALUES are provided, the configuration value is set.
    KEY should be in the format 'section.option', e.g. 'scan.workers'.
    """
    config_manager = ConfigManager()
    if "." not in key:
        raise SystemExit("Invalid KEY given. Is it in the format 'section.option'?")
    section, option = key.split(".", 1)

    if not values:
        result = config_manager.get(section, option)
        if result is None:
            click.echo(f"Configuration '{key}' not found.")
        else:
            click.echo(f"{key} = {result}")
        return

    converted_values: List[Any] = []
    for value in values:
        if value.lower() in ("true", "false"):
            converted_values.append(value.lower() == "true")
        elif value.isdigit():
            converted_values.append(int(value))
        else:
            converted_values.append(value)
    # a single value is stored as-is, several as a list
    final_value = converted_values[0] if len(converted_values) == 1 else converted_values
    config_manager.set(section, option, final_value)
    click.echo(f"Configuration '{key}' set to '{final_value}'.")
