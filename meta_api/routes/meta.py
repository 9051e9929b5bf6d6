"""
Meta Routes

One router per parent entity type, mounted under
/{parent_collection}/{parent_id}/meta:

    GET     /                 list visible meta
    POST    /                 add a meta entry (201 + Location)
    GET     /schema           schema document and endpoint args
    GET     /keys/{key}       meta stored under one key
    GET     /{entry_id}       one entry
    PUT     /{entry_id}       change key and/or value
    PATCH   /{entry_id}       same as PUT
    DELETE  /{entry_id}       permanent delete, requires ?force=true
"""

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from meta_api.auth import get_optional_user
from meta_api.config import settings
from meta_api.constants.meta import PARENT_COLLECTIONS, EntityType, ViewMode
from meta_api.database import get_db
from meta_api.models.user import User
from meta_api.schemas.meta import (
    MetaCreate,
    MetaDeleteResponse,
    MetaResponse,
    MetaSchemaResponse,
    MetaUpdate,
)
from meta_api.services.entity_adapters import get_adapter
from meta_api.services.meta_service import MetaResourceService, RequestContext
from meta_api.services.meta_store import SqlAlchemyMetaStore
from meta_api.services.permission_engine import PermissionEngine
from meta_api.services.schema_builder import SchemaBuilder


def _service_provider(entity_type: EntityType):
    async def provider(request: Request, db: AsyncSession = Depends(get_db)) -> MetaResourceService:
        registry = request.app.state.meta_registry
        adapter = get_adapter(entity_type, db)
        return MetaResourceService(
            entity_type,
            registry=registry,
            store=SqlAlchemyMetaStore(db),
            adapter=adapter,
            engine=PermissionEngine(adapter, settings.protected_meta_prefix),
            plugins=request.app.state.plugin_registry,
            schema_builder=SchemaBuilder(registry),
            base_url=settings.api_prefix,
        )

    return provider


def _request_context(service: MetaResourceService, caller: User | None, context: str | None) -> RequestContext:
    params = service.schema_builder.validate_args(
        service.schema_builder.collection_params(), {"context": context}
    )
    return RequestContext(caller=caller, view_mode=ViewMode(params["context"]))


def build_meta_router(entity_type: EntityType) -> APIRouter:
    """Create the meta routes for *entity_type*."""
    entity_type = EntityType(entity_type)
    collection = PARENT_COLLECTIONS[entity_type]
    router = APIRouter(
        prefix=f"/{collection}/{{parent_id}}/meta",
        tags=[f"{entity_type.value.capitalize()} Meta"],
    )
    get_service = _service_provider(entity_type)

    @router.get("", response_model=list[MetaResponse])
    async def list_meta(
        parent_id: int,
        context: str = Query(ViewMode.VIEW.value, description="view or edit"),
        service: MetaResourceService = Depends(get_service),
        current_user: User | None = Depends(get_optional_user),
    ):
        ctx = _request_context(service, current_user, context)
        return await service.list(parent_id, ctx)

    @router.post("", response_model=MetaResponse, status_code=status.HTTP_201_CREATED)
    async def create_meta(
        parent_id: int,
        body: MetaCreate,
        response: Response,
        service: MetaResourceService = Depends(get_service),
        current_user: User | None = Depends(get_optional_user),
    ):
        args = service.schema_builder.validate_args(service.create_args(), body.model_dump())
        ctx = RequestContext(caller=current_user, view_mode=ViewMode.EDIT)
        created = await service.create(parent_id, args["key"], args["value"], ctx)
        response.headers["Location"] = service.entry_url(parent_id, created.id)
        return created

    @router.get("/schema", response_model=MetaSchemaResponse)
    async def get_meta_schema(
        parent_id: int,
        service: MetaResourceService = Depends(get_service),
    ):
        return await service.schema(parent_id)

    @router.get("/keys/{key}", response_model=MetaResponse)
    async def get_meta_by_key(
        parent_id: int,
        key: str,
        context: str = Query(ViewMode.VIEW.value, description="view or edit"),
        service: MetaResourceService = Depends(get_service),
        current_user: User | None = Depends(get_optional_user),
    ):
        ctx = _request_context(service, current_user, context)
        return await service.get(parent_id, key, ctx)

    @router.get("/{entry_id}", response_model=MetaResponse)
    async def get_meta(
        parent_id: int,
        entry_id: int,
        context: str = Query(ViewMode.VIEW.value, description="view or edit"),
        service: MetaResourceService = Depends(get_service),
        current_user: User | None = Depends(get_optional_user),
    ):
        ctx = _request_context(service, current_user, context)
        return await service.get_entry(parent_id, entry_id, ctx)

    @router.api_route("/{entry_id}", methods=["PUT", "PATCH"], response_model=MetaResponse)
    async def update_meta(
        parent_id: int,
        entry_id: int,
        body: MetaUpdate,
        service: MetaResourceService = Depends(get_service),
        current_user: User | None = Depends(get_optional_user),
    ):
        args = service.schema_builder.validate_args(service.update_args(), body.model_dump(exclude_none=True))
        ctx = RequestContext(caller=current_user, view_mode=ViewMode.EDIT)
        return await service.update(parent_id, entry_id, ctx, key=args.get("key"), value=args.get("value"))

    @router.delete("/{entry_id}", response_model=MetaDeleteResponse)
    async def delete_meta(
        parent_id: int,
        entry_id: int,
        force: bool = Query(False, description="Must be true; meta cannot be trashed."),
        delete_all: bool = Query(False, description="Remove this key/value from every object."),
        service: MetaResourceService = Depends(get_service),
        current_user: User | None = Depends(get_optional_user),
    ):
        ctx = RequestContext(caller=current_user, view_mode=ViewMode.EDIT)
        return await service.delete(parent_id, entry_id, ctx, force=force, delete_all=delete_all)

    return router
