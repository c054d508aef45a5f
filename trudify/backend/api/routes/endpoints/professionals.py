"""
Professional API Endpoints.
"""

from fastapi import APIRouter

from trudify.backend.core.dependencies import DbSession, Locale
from trudify.backend.schemas.base import ApiResponse
from trudify.backend.schemas.professional import ProfessionalProfile
from trudify.backend.services.professionals import ProfessionalService

router = APIRouter()


@router.get(
    "/{professional_id}",
    response_model=ApiResponse[ProfessionalProfile],
    summary="Get a professional profile",
    description="Public profile with completed tasks and reviews. Relative dates follow the lang query parameter.",
)
async def get_professional(
    professional_id: str,
    db: DbSession,
    locale: Locale,
) -> ApiResponse[ProfessionalProfile]:
    profile = await ProfessionalService(db).get_profile(professional_id, locale)
    return ApiResponse(data=profile)
