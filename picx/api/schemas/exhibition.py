"""
Exhibition schemas.
"""

from pydantic import BaseModel


class ExhibitionInfo(BaseModel):
    """Exhibition aggregated from an external museum API."""

    title: str = ""
    gallery_or_museum: str = ""
    date: str = ""
    location: str = ""
    url: str = ""
    description: str = ""
    image_url: str = ""
    source_api: str = ""
