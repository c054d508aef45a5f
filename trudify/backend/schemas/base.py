"""
Response envelopes.

Every JSON body the API returns has ``success``, ``data``, ``error`` and
``metadata`` (timestamp, request id); list endpoints add ``pagination``.
Envelope keys stay snake_case. Records inside ``data`` are CamelModel
subclasses and are dumped by alias.
"""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from trudify.backend.core.utils import utc_now

DataT = TypeVar("DataT")


class CamelModel(BaseModel):
    """snake_case attributes, camelCase JSON; accepts either on input and builds from ORM rows."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ResponseMetadata(BaseModel):
    timestamp: datetime = Field(default_factory=utc_now)
    request_id: str | None = None


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class _Envelope(BaseModel):
    success: bool = True
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


class ApiResponse(_Envelope, Generic[DataT]):
    data: DataT | None = None
    error: ErrorDetail | None = None


class ErrorResponse(_Envelope):
    success: bool = False
    data: None = None
    error: ErrorDetail


class PaginationInfo(BaseModel):
    total: int
    limit: int
    offset: int
    # True while rows remain after this page
    has_more: bool = False


class PaginatedResponse(_Envelope, Generic[DataT]):
    data: list[DataT]
    error: None = None
    pagination: PaginationInfo
