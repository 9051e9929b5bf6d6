"""
Plugin Registry

PluginRegistry stores registered plugins and dispatches hook events and
filters to subscribers. One instance is built per application and handed
to the services that fire hooks.

Hooks are fire-and-forget: each subscriber's handle_hook() is awaited in
sequence; exceptions are caught, logged, and execution continues.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from meta_api.plugins.base import PluginBase

logger = logging.getLogger(__name__)


class PluginRegistry:
    """
    In-process registry for plugins.

    Stores registered plugins by name and maintains an index of hook and
    filter subscriptions for efficient dispatch.
    """

    def __init__(self) -> None:
        self._plugins: dict[str, PluginBase] = {}
        self._hook_subscriptions: dict[str, list[PluginBase]] = defaultdict(list)
        self._filter_subscriptions: dict[str, list[PluginBase]] = defaultdict(list)

    # ── Registration ──────────────────────────────────────────────────────────

    def register(self, plugin: PluginBase) -> None:
        """Register a plugin and index its subscriptions."""
        self._plugins[plugin.meta.name] = plugin
        for hook in plugin.meta.hooks:
            self._hook_subscriptions[hook].append(plugin)
        for filter_name in plugin.meta.filters:
            self._filter_subscriptions[filter_name].append(plugin)
        logger.info("Plugin registered: %s v%s", plugin.meta.name, plugin.meta.version)

    # ── Lookup ────────────────────────────────────────────────────────────────

    def get(self, name: str) -> PluginBase | None:
        """Return the plugin with the given name, or None if not registered."""
        return self._plugins.get(name)

    def all_plugins(self) -> list[PluginBase]:
        """Return all registered plugins in registration order."""
        return list(self._plugins.values())

    def is_registered(self, name: str) -> bool:
        return name in self._plugins

    # ── Dispatch ──────────────────────────────────────────────────────────────

    async def fire_hook(self, hook_name: str, payload: dict[str, Any]) -> None:
        """
        Fire a hook to all subscribing plugins.

        A misbehaving plugin never prevents others from running and never
        fails the request that fired the hook.
        """
        for plugin in self._hook_subscriptions.get(hook_name, []):
            try:
                await plugin.handle_hook(hook_name, payload)
            except Exception as exc:
                logger.warning(
                    "Plugin %s hook %s raised: %s",
                    plugin.meta.name,
                    hook_name,
                    exc,
                )

    async def apply_filters(self, filter_name: str, value: Any, context: dict[str, Any] | None = None) -> Any:
        """
        Pass *value* through every subscriber of *filter_name* in turn.

        A subscriber that raises is skipped; the value it was given is
        passed on unchanged.
        """
        context = context or {}
        for plugin in self._filter_subscriptions.get(filter_name, []):
            try:
                value = await plugin.apply_filter(filter_name, value, context)
            except Exception as exc:
                logger.warning(
                    "Plugin %s filter %s raised: %s",
                    plugin.meta.name,
                    filter_name,
                    exc,
                )
        return value

    async def unload_all(self) -> None:
        for plugin in self.all_plugins():
            try:
                await plugin.on_unload()
            except Exception as exc:
                logger.warning("Plugin %s failed to unload: %s", plugin.meta.name, exc)
