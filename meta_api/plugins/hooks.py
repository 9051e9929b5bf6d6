"""
Plugin Hook Constants

Centralised list of hook names that plugins can subscribe to.
Hook names follow the `category.action` convention.
"""

from __future__ import annotations

# ── Meta lifecycle (events, fire-and-forget) ──────────────────────────────────
HOOK_META_INSERTED = "meta.inserted"
HOOK_META_UPDATED = "meta.updated"
HOOK_META_DELETED = "meta.deleted"

# ── Filters (subscribers may rewrite the payload) ─────────────────────────────
FILTER_META_PREPARE_RESPONSE = "meta.prepare_response"

# ── Master lists ──────────────────────────────────────────────────────────────
ALL_HOOKS: list[str] = [
    HOOK_META_INSERTED,
    HOOK_META_UPDATED,
    HOOK_META_DELETED,
]

ALL_FILTERS: list[str] = [
    FILTER_META_PREPARE_RESPONSE,
]
