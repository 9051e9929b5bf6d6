"""
Role permissions with inheritance support.

Capability tokens checked by the entity adapters when deciding whether a
caller may read, edit or delete a parent entity (and therefore its meta).
"""

import logging

from meta_api.constants.roles import RoleName

logger = logging.getLogger(__name__)

ALL_PERMISSIONS = {
    "edit_posts",
    "delete_posts",
    "edit_others_posts",
    "delete_others_posts",
    "read_private_posts",
    "moderate_comments",
    "manage_terms",
    "list_users",
    "edit_users",
    "view_meta_audit",
    "manage_meta",
}

ROLE_PERMISSIONS = {
    RoleName.USER.value: [],
    RoleName.AUTHOR.value: ["edit_posts", "delete_posts"],
    RoleName.EDITOR.value: [
        "edit_others_posts",
        "delete_others_posts",
        "read_private_posts",
        "moderate_comments",
        "manage_terms",
    ],
    RoleName.MANAGER.value: ["list_users", "edit_users", "view_meta_audit"],
    RoleName.ADMIN.value: ["*"],
    RoleName.SUPERADMIN.value: ["*"],  # Superadmin has unrestricted access
}

# Each role also holds every permission of the role it inherits from
ROLE_INHERITANCE = {
    RoleName.EDITOR.value: RoleName.AUTHOR.value,
    RoleName.MANAGER.value: RoleName.EDITOR.value,
}


def get_role_permissions(role: str) -> list:
    """
    Returns the permissions for a given role, including inherited permissions.
    """
    if role not in ROLE_PERMISSIONS:
        raise ValueError(f"Invalid role: {role}")

    permissions = set(ROLE_PERMISSIONS[role])

    parent = ROLE_INHERITANCE.get(role)
    while parent:
        permissions.update(ROLE_PERMISSIONS[parent])
        parent = ROLE_INHERITANCE.get(parent)

    return list(permissions)


def user_has_permission(user, permission: str) -> bool:
    """
    Return True if *user* holds *permission* through its role.

    Anonymous callers (None) hold nothing. Grants stored on the Role row
    are added to the static role table.
    """
    if user is None or user.role is None:
        return False

    try:
        allowed = set(get_role_permissions(user.role.name))
    except ValueError:
        logger.warning("User %s has unknown role %r", user.id, user.role.name)
        allowed = set()

    allowed.update(user.role.permissions or [])
    return "*" in allowed or permission in allowed
