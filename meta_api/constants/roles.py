"""
Role Constants

Role names used by the permission table, to avoid hardcoded values
throughout the codebase.
"""

from enum import Enum


class RoleName(str, Enum):
    """Enumeration of role names in the system."""

    USER = "user"
    AUTHOR = "author"
    EDITOR = "editor"
    MANAGER = "manager"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"
