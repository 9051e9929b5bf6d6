"""
Plugin System

Public API for the plugin system:
    PluginMeta      plugin metadata dataclass
    PluginBase      abstract base class for all plugins
    PluginRegistry  registry + hook/filter dispatcher
"""

from .base import PluginBase, PluginMeta
from .registry import PluginRegistry

__all__ = ["PluginBase", "PluginMeta", "PluginRegistry"]
