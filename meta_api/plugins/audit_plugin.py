"""
Meta Audit Plugin

Built-in subscriber to the meta lifecycle hooks. Every event is written to
the `meta_api.audit` logger and kept in a bounded in-memory tail that the
audit route exposes.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any

from meta_api.plugins.base import PluginBase, PluginMeta
from meta_api.plugins.hooks import ALL_HOOKS

audit_logger = logging.getLogger("meta_api.audit")

_META = PluginMeta(
    name="meta_audit",
    version="1.0.0",
    description="Records meta inserts, updates and deletes",
    hooks=list(ALL_HOOKS),
    config_schema={
        "max_events": {"type": "integer", "default": 500},
    },
)


class MetaAuditPlugin(PluginBase):
    def __init__(self, max_events: int = 500) -> None:
        self._events: deque[dict[str, Any]] = deque(maxlen=max_events)

    @property
    def meta(self) -> PluginMeta:
        return _META

    async def on_load(self, config: dict[str, Any]) -> None:
        max_events = int(config.get("max_events", self._events.maxlen))
        if max_events != self._events.maxlen:
            self._events = deque(self._events, maxlen=max_events)

    async def handle_hook(self, hook_name: str, payload: dict[str, Any]) -> None:
        meta = payload.get("meta") or {}
        event = {
            "event": hook_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "entity_type": payload.get("entity_type"),
            "entity_id": payload.get("entity_id"),
            "entry_id": meta.get("id"),
            "key": meta.get("key"),
            "user_id": payload.get("user_id"),
        }
        self._events.append(event)
        audit_logger.info(
            "%s %s",
            hook_name,
            event["key"],
            extra={
                "entity_type": event["entity_type"],
                "entity_id": event["entity_id"],
                "entry_id": event["entry_id"],
                "meta_key": event["key"],
                "user_id": event["user_id"],
            },
        )

    def recent_events(self, limit: int = 50) -> list[dict[str, Any]]:
        """Newest first."""
        return list(reversed(self._events))[:limit]
