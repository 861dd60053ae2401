"""
Statistics routes.

One router per entity set, mounted at ``/<entity>-stats``:

- GET    /<entity>-stats?scope=<id>&refresh=<bool>   stats bundle
- POST   /<entity>-stats/refresh?scope=<id>          drop one scope's cached bundle
- DELETE /<entity>-stats/cache                       drop every cached bundle (admin)
- GET    /<entity>-stats/cache/info?scope=<id>       cache state for one scope
"""

import logging
from typing import Any, Dict, List, Optional, Type

from fastapi import APIRouter, Header, Query, Request
from pydantic import BaseModel, create_model

from models.schemas import (
    CacheClearResponse,
    CacheInfoResponse,
    CategoryCount,
    ErrorResponse,
    MessageResponse,
    RangeCount,
)
from services.stats_dimensions import BUCKET, ENTITY_SETS, EntitySet
from services.stats_service import StatsService
from utils.auth import require_role
from utils.errors import AuthenticationError, PermissionDeniedError

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing or malformed scope"},
    500: {"model": ErrorResponse, "description": "Statistics could not be computed"},
    503: {"model": ErrorResponse, "description": "Database unavailable"},
}


def bundle_model(entity: EntitySet) -> Type[BaseModel]:
    """Describe the stats bundle of one entity set for the OpenAPI schema."""
    fields: Dict[str, Any] = {"total": (int, ...)}
    for dim in entity.dimensions:
        item = RangeCount if dim.kind == BUCKET else CategoryCount
        fields[dim.name] = (List[item], ...)
    for average in entity.averages:
        fields[average.name] = (float, ...)
    return create_model(f"{entity.name.capitalize()}StatsBundle", **fields)


def _require(authorization: str, roles: list) -> dict:
    """Translate a require_role failure into the matching API error."""
    user, error = require_role(authorization, roles)
    if error:
        if error.startswith("Access denied"):
            raise PermissionDeniedError(error)
        raise AuthenticationError(error)
    return user


def build_stats_router(entity_name: str) -> APIRouter:
    """
    Create the stats router for one entity set.

    The service is looked up on ``app.state.stats_services`` per request,
    so the app (and tests) own its lifecycle.
    """
    router = APIRouter(prefix=f"/{entity_name}-stats", tags=[f"{entity_name}-stats"])

    def get_service(request: Request) -> StatsService:
        return request.app.state.stats_services[entity_name]

    stats_responses = {200: {"model": bundle_model(ENTITY_SETS[entity_name])}, **ERROR_RESPONSES}

    # Bundles are built as plain dicts; the model only documents their shape.
    @router.get("", response_model=None, responses=stats_responses)
    def get_stats(
        request: Request,
        scope: Optional[str] = Query(None, description="Project identifier (ObjectId)"),
        refresh: bool = Query(False, description="Bypass the cache and recompute"),
    ) -> Dict[str, Any]:
        """Get the statistics bundle for one scope, cached for the configured TTL."""
        return get_service(request).get_stats(scope, refresh=refresh)

    @router.post("/refresh", response_model=MessageResponse, responses=ERROR_RESPONSES)
    def refresh_stats(
        request: Request,
        scope: Optional[str] = Query(None),
        authorization: str = Header(""),
    ) -> MessageResponse:
        """Invalidate one scope's cached bundle; the next GET recomputes it."""
        user = _require(authorization, ["user", "admin"])
        get_service(request).invalidate(scope)
        logger.info("%s stats cache for %s invalidated by %s", entity_name, scope, user.get("username"))
        return MessageResponse(message="Cache cleared, the next request will recompute the statistics.")

    @router.delete("/cache", response_model=CacheClearResponse)
    def clear_cache(
        request: Request,
        authorization: str = Header(""),
    ) -> CacheClearResponse:
        """Drop every cached bundle for this entity set. Requires admin role."""
        user = _require(authorization, ["admin"])
        cleared = get_service(request).invalidate_all()
        logger.info("%s stats cache cleared by %s", entity_name, user.get("username"))
        return CacheClearResponse(message=f"{entity_name.capitalize()} stats cache cleared.", cleared=cleared)

    @router.get(
        "/cache/info",
        response_model=CacheInfoResponse,
        response_model_exclude_none=True,
        responses=ERROR_RESPONSES,
    )
    def cache_info(
        request: Request,
        scope: Optional[str] = Query(None),
        authorization: str = Header(""),
    ) -> CacheInfoResponse:
        """Report whether a scope is cached and its remaining time-to-live."""
        _require(authorization, ["user", "admin"])
        return CacheInfoResponse(**get_service(request).cache_info(scope))

    return router


articles_router = build_stats_router("articles")
authors_router = build_stats_router("authors")
