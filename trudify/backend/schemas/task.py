"""
Task Schemas.

Request validation for task creation and the task record returned to
the frontend.
"""

from datetime import datetime
from typing import Literal

from pydantic import Field, model_validator

from trudify.backend.schemas.base import CamelModel


class TaskCreate(CamelModel):
    """Schema for creating a new task."""

    category: str = Field(..., min_length=1, max_length=64, examples=["plumbing"])
    title: str = Field(
        ...,
        min_length=10,
        max_length=200,
        examples=["Fix a leaking kitchen tap"],
    )
    description: str = Field(..., min_length=20, max_length=2000)
    city: str = Field(..., min_length=1, max_length=128, examples=["Sofia"])

    subcategory: str | None = Field(default=None, max_length=64)
    neighborhood: str | None = Field(default=None, max_length=128)
    requirements: str | None = Field(default=None, max_length=2000)

    budget_type: Literal["fixed", "range"] = "fixed"
    budget_min: float | None = Field(default=None, gt=0)
    budget_max: float | None = Field(default=None, gt=0)

    urgency: Literal["same_day", "within_week", "flexible"] | None = None
    deadline: datetime | None = None

    @model_validator(mode="after")
    def _budget_range_ordered(self) -> "TaskCreate":
        if (
            self.budget_type == "range"
            and self.budget_min is not None
            and self.budget_max is not None
            and self.budget_max <= self.budget_min
        ):
            raise ValueError("Maximum budget must be greater than minimum budget")
        return self


class TaskResponse(CamelModel):
    """Task record as seen by the frontend."""

    id: str
    title: str
    description: str
    requirements: str | None = None
    category: str
    subcategory: str | None = None
    city: str
    neighborhood: str | None = None
    budget_min_bgn: float | None = None
    budget_max_bgn: float | None = None
    budget_type: str = "fixed"
    is_urgent: bool = False
    deadline: datetime | None = None
    status: str
    customer_id: str
    selected_professional_id: str | None = None
    reviewed_by_customer: bool = False
    created_at: datetime
    updated_at: datetime | None = None
    completed_by_professional_at: datetime | None = None
    confirmed_by_customer_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None


