"""
Application Schemas.
"""

from datetime import datetime

from pydantic import Field

from trudify.backend.schemas.base import CamelModel


class ApplicationCreate(CamelModel):
    """
    A professional's bid on an open task.

    Required fields are checked by the lifecycle service so that a missing
    one is a 400 like the other application errors.
    """

    task_id: str | None = None
    proposed_price: float | None = None
    estimated_duration_hours: float | None = Field(default=None, ge=0)
    message: str | None = Field(default=None, max_length=2000)
    availability_date: datetime | None = None


class ApplicationResponse(CamelModel):
    """Application record as seen by the frontend."""

    id: str
    task_id: str
    professional_id: str
    proposed_price_bgn: float | None = None
    estimated_duration_hours: float | None = None
    message: str | None = None
    availability_date: datetime | None = None
    status: str
    accepted_at: datetime | None = None
    responded_at: datetime | None = None
    rejection_reason: str | None = None
    withdrawn_at: datetime | None = None
    withdrawal_reason: str | None = None
    withdrawal_timing_impact: str | None = None
    removed_by_customer_at: datetime | None = None
    removal_reason: str | None = None
    days_worked_before_removal: int | None = None
    created_at: datetime
