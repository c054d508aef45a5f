"""
Professional Profile Schemas.

Public profile of a professional, built from the user row plus their
completed tasks and received reviews. Missing numbers and texts are
filled with defaults, and dates get a localized relative form.
"""

from datetime import datetime

from trudify.backend.core.i18n import format_relative_date, translate
from trudify.backend.models.review import Review
from trudify.backend.models.task import Task
from trudify.backend.models.user import User
from trudify.backend.schemas.base import CamelModel

DEFAULT_RESPONSE_TIME_HOURS = 2


class SafetyStatus(CamelModel):
    phone_verified: bool = False
    email_verified: bool = False
    profile_complete: bool = False
    police_certificate: bool = False
    background_check_passed: bool = False


class CompletedTaskSummary(CamelModel):
    id: str
    title: str
    category: str
    city: str
    completed_at: datetime | None = None
    completed_ago: str | None = None


class ReviewSummary(CamelModel):
    id: str
    task_id: str
    reviewer_id: str
    rating: int
    comment: str | None = None
    created_at: datetime
    created_ago: str | None = None


class ProfessionalProfile(CamelModel):
    """Public professional profile returned by GET /api/professionals/{id}."""

    id: str
    full_name: str | None = None
    avatar_url: str | None = None
    bio: str
    city: str | None = None
    neighborhood: str | None = None
    specialization: str
    service_categories: list[str] = []
    years_experience: int = 0
    hourly_rate: float = 0
    is_online: bool = False
    rating: float = 0
    reviews_count: int = 0
    completed_jobs: int = 0
    response_time: str
    safety_status: SafetyStatus
    completed_tasks_list: list[CompletedTaskSummary] = []
    reviews: list[ReviewSummary] = []
    created_at: datetime
    member_since: str | None = None

    @classmethod
    def from_user(
        cls,
        user: User,
        completed_tasks: list[Task],
        reviews: list[Review],
        locale: str,
        now: datetime | None = None,
    ) -> "ProfessionalProfile":
        """Map a user row and its history onto the public profile record."""
        response_hours = user.response_time_hours or DEFAULT_RESPONSE_TIME_HOURS
        return cls(
            id=user.id,
            full_name=user.full_name,
            avatar_url=user.avatar_url,
            bio=user.bio or translate(locale, "profile.default_bio") or "",
            city=user.city,
            neighborhood=user.neighborhood,
            specialization=(
                user.professional_title
                or translate(locale, "profile.default_specialization")
                or ""
            ),
            service_categories=user.service_categories or [],
            years_experience=user.years_experience or 0,
            hourly_rate=user.hourly_rate_bgn or 0,
            is_online=user.availability_status == "online",
            rating=user.average_rating or 0,
            reviews_count=user.total_reviews or 0,
            completed_jobs=user.tasks_completed or 0,
            response_time=translate(
                locale, "profile.response_time", {"count": _format_hours(response_hours)}
            ) or str(response_hours),
            safety_status=SafetyStatus(
                phone_verified=bool(user.is_phone_verified),
                email_verified=bool(user.is_email_verified),
                profile_complete=bool(user.full_name and user.bio and user.city),
            ),
            completed_tasks_list=[
                CompletedTaskSummary(
                    id=task.id,
                    title=task.title,
                    category=task.category,
                    city=task.city,
                    completed_at=task.completed_at,
                    completed_ago=format_relative_date(task.completed_at, locale, now),
                )
                for task in completed_tasks
            ],
            reviews=[
                ReviewSummary(
                    id=review.id,
                    task_id=review.task_id,
                    reviewer_id=review.reviewer_id,
                    rating=review.rating,
                    comment=review.comment,
                    created_at=review.created_at,
                    created_ago=format_relative_date(review.created_at, locale, now),
                )
                for review in reviews
            ],
            created_at=user.created_at,
            member_since=format_relative_date(user.created_at, locale, now),
        )


def _format_hours(hours: float) -> str:
    return str(int(hours)) if float(hours).is_integer() else f"{hours:g}"
