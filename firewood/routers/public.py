# firewood/routers/public.py
from fastapi import APIRouter, Depends, Response

from firewood.core.config import Settings, get_settings
from firewood.schemas.payment import RatingRead
from firewood.services.rating_service import RatingService

router = APIRouter(prefix="/public", tags=["Public"])

RATING_CACHE_CONTROL = "public, s-maxage=3600, stale-while-revalidate=86400"


@router.get("/google-rating", response_model=RatingRead)
def google_rating(
    response: Response,
    settings: Settings = Depends(get_settings),
):
    """
    Star rating and review count for the footer badge.
    """
    rating = RatingService(settings).get_rating()
    response.headers["Cache-Control"] = RATING_CACHE_CONTROL
    return rating
