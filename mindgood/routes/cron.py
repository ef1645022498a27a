"""
Cron endpoints, authenticated with the shared CRON_SECRET bearer token
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..firebase import get_db
from ..services.payout_service import PayoutService
from ..webhook_security import verify_cron_secret

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["Cron"], dependencies=[Depends(verify_cron_secret)])


@router.get("/process-payouts")
async def process_payouts(db=Depends(get_db)):
    """Create pending payouts for completed sessions past the grace period"""
    try:
        return PayoutService(db).run_sweep()
    except Exception as e:
        logger.error(f"❌ Payout sweep failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to process payouts") from e
