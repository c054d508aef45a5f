"""
Offset Pagination.

List endpoints (tasks, notifications) take ``limit`` and ``offset`` query
parameters and answer with the paginated envelope:

    {"success": true, "data": [...camelCase records...],
     "pagination": {"total", "limit", "offset", "has_more"},
     "metadata": {"timestamp", "request_id"}}

The default page size and the cap come from application.yaml. A limit
above the cap is clamped rather than rejected.
"""

from dataclasses import dataclass
from typing import Any

from fastapi import Query
from pydantic import BaseModel

from trudify.backend.core.config import get_app_config
from trudify.backend.schemas.base import PaginatedResponse, PaginationInfo, ResponseMetadata


@dataclass
class PaginationParams:
    limit: int
    offset: int


def get_pagination_params(
    limit: int | None = Query(default=None, ge=1, description="Page size, capped by the server"),
    offset: int = Query(default=0, ge=0, description="Rows to skip"),
) -> PaginationParams:
    """FastAPI dependency: ``pagination: PaginationParams = Depends(get_pagination_params)``."""
    settings = get_app_config().application.pagination
    if limit is None:
        limit = settings.default_limit
    return PaginationParams(limit=min(limit, settings.max_limit), offset=offset)


def create_paginated_response(
    items: list[Any],
    item_schema: type[BaseModel],
    total: int,
    limit: int,
    offset: int = 0,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Serialize one page of ORM rows through ``item_schema`` (by alias) into the envelope."""
    records = [item_schema.model_validate(item).model_dump(mode="json", by_alias=True) for item in items]
    page = PaginatedResponse(
        data=records,
        pagination=PaginationInfo(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(records) < total,
        ),
        metadata=ResponseMetadata(request_id=request_id),
    )
    return page.model_dump(mode="json")
