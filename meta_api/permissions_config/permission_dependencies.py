from fastapi import Depends

from meta_api.auth import get_current_user
from meta_api.exceptions import ForbiddenError
from meta_api.permissions_config.permissions import user_has_permission


def permission_required(permission: str):
    async def checker(current_user=Depends(get_current_user)):
        if user_has_permission(current_user, permission):
            return current_user
        raise ForbiddenError(
            "You don't have permission to perform this action.",
            details={"required_permission": permission},
        )

    return checker
