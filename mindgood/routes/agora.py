"""
Video session tokens
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..auth import get_current_uid
from ..schemas import AgoraTokenRequest
from ..services.agora_service import AgoraNotConfiguredError, build_rtc_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agora", tags=["Video"])


@router.post("/token")
async def create_agora_token(body: AgoraTokenRequest, uid: str = Depends(get_current_uid)):
    if not body.channelName or not body.userId:
        raise HTTPException(status_code=400, detail="Missing channelName or userId")

    try:
        return build_rtc_token(body.channelName)
    except AgoraNotConfiguredError as e:
        raise HTTPException(status_code=500, detail="Agora credentials not configured") from e
