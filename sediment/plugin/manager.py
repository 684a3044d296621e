# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
from typing import Optional

import pluggy
from loguru import logger

from sediment.configmanager import ConfigManager
from sediment.plugin import hookspecs


def _register_plugins(pm: pluggy.PluginManager) -> None:
    # pylint: disable=import-outside-toplevel
    # don't want all these imports as part of the file-level scope
    from sediment.contributors import (
        apk_installed,
        cargo_package,
        dpkg_status,
        maven_pom,
        npm_package,
        python_dist_info,
        rpm_database,
    )
    from sediment.scan import unpack

    internal_plugins = (
        npm_package,
        cargo_package,
        python_dist_info,
        maven_pom,
        rpm_database,
        dpkg_status,
        apk_installed,
        unpack,
    )
    for plugin in internal_plugins:
        pm.register(plugin)


def set_blocked_plugins(pm: pluggy.PluginManager) -> None:
    """Blocks and unregisters the plugins listed in the ``plugins.blocked`` setting."""
    for plugin_name in ConfigManager().get_list("plugins", "blocked", []):
        if pm.is_blocked(plugin_name):
            continue
        plugin = pm.unregister(name=plugin_name)
        if plugin is None:
            logger.info(f"Blocked plugin '{plugin_name}' not found.")
        pm.set_blocked(plugin_name)


def get_plugin_manager() -> pluggy.PluginManager:
    pm = pluggy.PluginManager("sediment")
    pm.add_hookspecs(hookspecs)
    pm.load_setuptools_entrypoints("sediment")
    _register_plugins(pm)
    set_blocked_plugins(pm)
    pm.check_pending()
    return pm


def call_init_hooks(pm: pluggy.PluginManager, command_name: Optional[str] = None) -> None:
    pm.hook.init_hook(command_name=command_name)


def plugin_names(pm: pluggy.PluginManager) -> list:
    """Names of the registered plugins, using their short name where they provide one."""
    names = []
    for plugin in pm.get_plugins():
        name = pm.get_name(plugin) or pm.get_canonical_name(plugin)
        if hasattr(plugin, "short_name"):
            name = plugin.short_name() or name
        names.append(name)
    return names
