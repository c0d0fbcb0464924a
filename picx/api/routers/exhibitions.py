"""
Exhibition routes.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from ..errors import ResourceNotFoundError
from ..schemas.exhibition import ExhibitionInfo
from ..services.exhibition_service import ExhibitionService, get_exhibition_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/exhibitions", tags=["Exhibitions"])


@router.get("", response_model=List[ExhibitionInfo])
async def list_exhibitions(
    exhibitions: ExhibitionService = Depends(get_exhibition_service),
) -> List[ExhibitionInfo]:
    """Current exhibitions gathered from external museum APIs."""
    results = exhibitions.get_all_exhibitions()
    if not results:
        raise ResourceNotFoundError("Exhibitions", "all")
    return results
