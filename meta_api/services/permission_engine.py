"""
PermissionEngine

Decides whether a caller may read, write or delete one meta key of one
parent entity. Parent-level capability checks are delegated to the
injected EntityAdapter; key-level policy comes from the key's
MetaKeyDefinition.

Read algorithm (can_read):
    1. Nothing stored              -> deny (nothing to show)
    2. Caller cannot read parent   -> deny
    3. View mode and key not
       registered show_in_rest     -> deny (hidden keys never leak)
    4. Key has an authorization
       rule                        -> the rule decides
    5. Edit mode                   -> same answer as can_write
    6. Otherwise                   -> allow

Write and delete (can_write / can_delete) deny protected keys (the
configured prefix, "_" by default) unless registered show_in_rest, always
require the matching capability on the parent, then defer to the key's
rule when it has one.
"""

from __future__ import annotations

import logging
from typing import Any

from meta_api.constants.meta import SCALAR_TYPES, MetaAction, ViewMode
from meta_api.services.entity_adapters import EntityAdapter
from meta_api.services.meta_registry import AuthorizationContext, MetaKeyDefinition

logger = logging.getLogger(__name__)


def is_scalar_value(value: Any) -> bool:
    """
    True for values the API accepts on write: str, int, float and bool.

    Structured values (lists, dicts), byte blobs and None are rejected.
    """
    return isinstance(value, SCALAR_TYPES)


def is_empty_value(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


class PermissionEngine:
    def __init__(self, adapter: EntityAdapter, protected_prefix: str = "_") -> None:
        self.adapter = adapter
        self.protected_prefix = protected_prefix

    def is_protected_key(self, key: str) -> bool:
        return bool(self.protected_prefix) and key.startswith(self.protected_prefix)

    def is_protected(self, key: str, definition: MetaKeyDefinition | None) -> bool:
        """A protected key stays protected unless registered show_in_rest."""
        if not self.is_protected_key(key):
            return False
        return definition is None or not definition.show_in_rest

    # ── Read ──────────────────────────────────────────────────────────────────

    def can_read(
        self,
        caller: Any,
        view_mode: ViewMode,
        entity: Any,
        definition: MetaKeyDefinition,
        stored_value: Any,
    ) -> bool:
        if is_empty_value(stored_value):
            return False

        if not self.adapter.check_read_permission(caller, entity):
            return False

        if view_mode == ViewMode.VIEW and not definition.show_in_rest:
            return False

        if definition.authorization_rule is not None:
            return self._evaluate_rule(caller, view_mode, entity, definition, MetaAction.READ)

        if view_mode == ViewMode.EDIT:
            return self.can_write(caller, view_mode, entity, definition)

        return True

    # ── Write / delete ────────────────────────────────────────────────────────

    def can_write(self, caller: Any, view_mode: ViewMode, entity: Any, definition: MetaKeyDefinition) -> bool:
        if self.is_protected(definition.key, definition):
            return False
        if not self.adapter.check_edit_permission(caller, entity):
            return False
        if definition.authorization_rule is not None:
            return self._evaluate_rule(caller, view_mode, entity, definition, MetaAction.EDIT)
        return True

    def can_delete(self, caller: Any, view_mode: ViewMode, entity: Any, definition: MetaKeyDefinition) -> bool:
        if self.is_protected(definition.key, definition):
            return False
        if not self.adapter.check_delete_permission(caller, entity):
            return False
        if definition.authorization_rule is not None:
            return self._evaluate_rule(caller, view_mode, entity, definition, MetaAction.DELETE)
        return True

    def rule_denies(self, caller: Any, view_mode: ViewMode, entity: Any, definition: MetaKeyDefinition) -> bool:
        """True when the key has a rule and that rule refuses a read."""
        if definition.authorization_rule is None:
            return False
        return not self._evaluate_rule(caller, view_mode, entity, definition, MetaAction.READ)

    def _evaluate_rule(
        self,
        caller: Any,
        view_mode: ViewMode,
        entity: Any,
        definition: MetaKeyDefinition,
        action: MetaAction,
    ) -> bool:
        context = AuthorizationContext(
            caller=caller,
            entity_type=self.adapter.entity_type,
            entity=entity,
            definition=definition,
            action=action,
            view_mode=view_mode,
            owner_id=self.adapter.owner_id(entity),
        )
        allowed = definition.authorization_rule.evaluate(context)
        if not allowed:
            logger.debug(
                "Authorization rule %r denied %s on %s",
                definition.authorization_rule,
                action.value,
                definition.key,
            )
        return bool(allowed)
