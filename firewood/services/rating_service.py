# firewood/services/rating_service.py
import logging

import httpx
from fastapi import HTTPException, status

from firewood.core.config import Settings
from firewood.schemas.payment import RatingRead

logger = logging.getLogger(__name__)

PLACES_SEARCH_URL = "https://places.googleapis.com/v1/places:searchText"
PLACES_FIELD_MASK = (
    "places.id,places.displayName,places.rating,places.userRatingCount,places.googleMapsUri"
)


class RatingLookupError(RuntimeError):
    """Google Places unreachable or returned nothing usable."""


class RatingService:
    """
    Google rating badge for the public site.

    One Places text search per call; callers are expected to cache the
    response at the edge (see Cache-Control on the route).
    """

    def __init__(self, settings: Settings, transport: httpx.BaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    def _fetch_place(self) -> dict:
        try:
            with httpx.Client(
                timeout=httpx.Timeout(self.settings.HTTP_TIMEOUT_SECONDS),
                transport=self._transport,
            ) as client:
                resp = client.post(
                    PLACES_SEARCH_URL,
                    headers={
                        "X-Goog-Api-Key": self.settings.GOOGLE_MAPS_API_KEY or "",
                        "X-Goog-FieldMask": PLACES_FIELD_MASK,
                    },
                    json={"textQuery": self.settings.GOOGLE_PLACES_QUERY, "maxResultCount": 1},
                )
        except httpx.HTTPError as e:
            raise RatingLookupError(f"Google Places request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if resp.is_error:
            message = (data.get("error") or {}).get("message") if isinstance(data, dict) else None
            raise RatingLookupError(message or "Google Places searchText failed")

        places = (data.get("places") or []) if isinstance(data, dict) else []
        if not places or not places[0].get("id"):
            raise RatingLookupError("Place not found")
        return places[0]

    def get_rating(self) -> RatingRead:
        if not self.settings.GOOGLE_MAPS_API_KEY or not self.settings.GOOGLE_PLACES_QUERY:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Rating lookup is not configured",
            )

        try:
            place = self._fetch_place()
        except RatingLookupError as e:
            logger.warning("Rating lookup failed: %s", e)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Rating provider error",
            )

        rating = place.get("rating")
        count = place.get("userRatingCount")
        return RatingRead(
            name=(place.get("displayName") or {}).get("text") or "Verrington Firewood",
            rating=float(rating) if isinstance(rating, (int, float)) else None,
            count=int(count) if isinstance(count, int) else None,
            maps_url=place.get("googleMapsUri"),
            review_url=self.settings.GOOGLE_REVIEW_URL,
        )
