"""
Plugin Loader

Registers the built-in plugins at application startup.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from meta_api.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG: dict[str, dict[str, Any]] = {
    "meta_audit": {"enabled": True, "max_events": 500},
}


async def initialize_plugins(registry: PluginRegistry, config: dict[str, dict[str, Any]] | None = None) -> None:
    """Load and register every enabled built-in plugin."""
    from meta_api.plugins.audit_plugin import MetaAuditPlugin

    config = config if config is not None else _DEFAULT_CONFIG

    for plugin_class in [MetaAuditPlugin]:
        plugin = plugin_class()
        plugin_config = config.get(plugin.meta.name, {"enabled": True})
        if not plugin_config.get("enabled", True):
            logger.info("Plugin %s disabled, skipping", plugin.meta.name)
            continue
        try:
            await plugin.on_load(plugin_config)
        except Exception as exc:
            logger.error("Plugin %s failed to load: %s", plugin.meta.name, exc)
            continue
        registry.register(plugin)
