"""
Plugin Base Classes

PluginMeta: declarative metadata for a plugin (name, version, hooks, filters).
PluginBase: abstract base class all plugins must subclass.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class PluginMeta:
    """
    Declarative metadata describing a plugin.

    Attributes:
        name:          Machine-readable slug, e.g. "meta_audit".
        version:       Semver string, e.g. "1.0.0".
        description:   Human-readable description.
        author:        Plugin author.
        hooks:         Event hook names this plugin subscribes to.
        filters:       Filter names this plugin subscribes to.
        config_schema: JSON Schema fragments describing configurable options.
    """

    name: str
    version: str
    description: str
    author: str = "Meta API Team"
    hooks: list[str] = field(default_factory=list)
    filters: list[str] = field(default_factory=list)
    config_schema: dict[str, Any] = field(default_factory=dict)


class PluginBase(ABC):
    """
    Abstract base class for all plugins.

    Subclasses must implement the `meta` property.
    All lifecycle methods have default no-op implementations so subclasses only
    override what they need.
    """

    @property
    @abstractmethod
    def meta(self) -> PluginMeta:
        """Return the plugin's metadata."""
        ...

    async def on_load(self, config: dict[str, Any]) -> None:  # noqa: B027
        """Called once at startup with the plugin's config dict."""

    async def on_unload(self) -> None:  # noqa: B027
        """Called when the app shuts down."""

    async def handle_hook(self, hook_name: str, payload: dict[str, Any]) -> Any:
        """
        Receive and process a hook event.

        Called by PluginRegistry.fire_hook() for each hook the plugin
        declared in PluginMeta.hooks. The return value is ignored.
        """
        return None

    async def apply_filter(self, filter_name: str, value: Any, context: dict[str, Any]) -> Any:
        """
        Return *value*, possibly rewritten.

        Called by PluginRegistry.apply_filters() for each filter the plugin
        declared in PluginMeta.filters.
        """
        return value
