import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import distinct, func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from admarket import __version__
from admarket.database import get_db
from admarket.models.advertisement import AdvertisementRecord
from admarket.models.campaign import FundingRecord, PayoutRecord
from admarket.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    now = datetime.now(timezone.utc)
    ads = (await db.execute(select(func.count(AdvertisementRecord.id)))).scalar() or 0
    live = (
        await db.execute(
            select(func.count(AdvertisementRecord.id)).where(AdvertisementRecord.end_date > now)
        )
    ).scalar() or 0
    funded = (await db.execute(select(func.count(distinct(FundingRecord.campaign_id))))).scalar() or 0
    payouts = (await db.execute(select(func.count(PayoutRecord.id)))).scalar() or 0

    return HealthResponse(
        status="healthy",
        version=__version__,
        advertisements_count=ads,
        live_advertisements_count=live,
        funded_campaigns_count=funded,
        payouts_count=payouts,
    )


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Readiness probe, verifies DB connectivity."""
    try:
        await db.execute(text("SELECT 1"))
        return {"status": "ready", "database": "connected"}
    except Exception:
        logger.exception("Readiness check failed: database unreachable")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "database": "unavailable"},
        )
