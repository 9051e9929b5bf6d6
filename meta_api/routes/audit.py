"""
Meta Audit Routes

Read access to the recent meta events recorded by the audit plugin.
"""

from fastapi import APIRouter, Depends, Query, Request

from meta_api.exceptions import ErrorCode, NotFoundError
from meta_api.models.user import User
from meta_api.permissions_config.permission_dependencies import permission_required
from meta_api.schemas.meta import MetaAuditEvent

router = APIRouter(tags=["Meta Audit"])


@router.get("/meta/audit", response_model=list[MetaAuditEvent])
async def list_meta_events(
    request: Request,
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(permission_required("view_meta_audit")),
):
    """Most recent meta inserts, updates and deletes, newest first."""
    plugin = request.app.state.plugin_registry.get("meta_audit")
    if plugin is None:
        raise NotFoundError("Meta audit is not enabled.", ErrorCode.RESOURCE_NOT_FOUND)
    return plugin.recent_events(limit)
