"""
Portal-wide statistics for the home page
"""
from datetime import datetime
from fastapi import APIRouter, Depends
import logging

from app.api.images import get_image_store
from app.models.image import PortalSummary, PortalSummaryEnvelope
from app.services.image_store import ImageStore
from app.services.stats_cache import StatsCache, get_stats_cache

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/summary", response_model=PortalSummaryEnvelope)
async def get_portal_summary(
    cache: StatsCache = Depends(get_stats_cache),
    store: ImageStore = Depends(get_image_store),
):
    """Totals shown to visitors; cached for STATS_CACHE_TTL_SECONDS"""
    entry = await cache.get_or_load(store.portal_summary)
    return PortalSummaryEnvelope(data=PortalSummary(
        **entry.value,
        cached_at=datetime.utcfromtimestamp(entry.cached_at),
    ))
