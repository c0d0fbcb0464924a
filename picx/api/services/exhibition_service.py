"""
Exhibition Service
Aggregates current art exhibitions from public museum APIs.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from ..config import get_settings
from ..schemas.exhibition import ExhibitionInfo

logger = logging.getLogger(__name__)

HARVARD_SOURCE = "Harvard Art Museums API"
HARVARD_GALLERY = "Harvard Art Museums"


def parse_harvard_exhibition(record: Dict[str, Any]) -> ExhibitionInfo:
    """Map one Harvard `exhibition` record to an ExhibitionInfo."""
    date = record.get("period")
    if not date:
        begin = record.get("begindate") or ""
        end = record.get("enddate") or ""
        date = f"{begin} - {end}" if begin or end else ""

    venues = record.get("venues") or []
    images = record.get("images") or []

    return ExhibitionInfo(
        title=record.get("title") or "",
        gallery_or_museum=HARVARD_GALLERY,
        date=date,
        location=venues[0].get("name", "") if venues else "",
        url=record.get("url") or "",
        description=record.get("shortdescription") or record.get("description") or "",
        image_url=images[0].get("baseimageurl", "") if images else "",
        source_api=HARVARD_SOURCE,
    )


class ExhibitionService:
    """Crawler over the configured exhibition sources."""

    def __init__(self, harvard_api_key: Optional[str], harvard_api_url: str, timeout: int = 10):
        self.harvard_api_key = harvard_api_key
        self.harvard_api_url = harvard_api_url
        self.timeout = timeout

    def get_all_exhibitions(self) -> List[ExhibitionInfo]:
        """Collect exhibitions from every source; a failing source adds nothing."""
        exhibitions: List[ExhibitionInfo] = []
        exhibitions.extend(self.fetch_harvard_exhibitions())
        logger.info(f"Collected {len(exhibitions)} exhibitions")
        return exhibitions

    def fetch_harvard_exhibitions(self) -> List[ExhibitionInfo]:
        if not self.harvard_api_key:
            logger.warning("HARVARD_API_KEY not configured, skipping Harvard exhibitions")
            return []

        params = {"apikey": self.harvard_api_key, "size": 100}
        try:
            response = requests.get(self.harvard_api_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            records = response.json().get("records") or []
            return [parse_harvard_exhibition(record) for record in records]
        except (AttributeError, TypeError, IndexError, ValidationError) as e:
            logger.error(f"Unexpected Harvard exhibitions payload: {e}", exc_info=True)
            return []
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching Harvard exhibitions: {e}")
            return []


def get_exhibition_service() -> ExhibitionService:
    settings = get_settings()
    return ExhibitionService(
        harvard_api_key=settings.harvard_api_key,
        harvard_api_url=settings.harvard_api_url,
        timeout=settings.exhibition_timeout,
    )
