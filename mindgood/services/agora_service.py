"""Agora RTC token generation for video sessions"""

import logging
import time
from typing import Optional

from agora_token_builder import RtcTokenBuilder

from ..config import AGORA_APP_CERTIFICATE, AGORA_APP_ID, AGORA_TOKEN_TTL_SECONDS

logger = logging.getLogger(__name__)

# RtcTokenBuilder role values
ROLE_PUBLISHER = 1


class AgoraNotConfiguredError(Exception):
    pass


def channel_name_for(appointment_id: str) -> str:
    return f"session_{appointment_id}"


def build_rtc_token(
    channel_name: str,
    uid: int = 0,
    ttl_seconds: int = AGORA_TOKEN_TTL_SECONDS,
    now: Optional[int] = None,
) -> dict:
    """
    Mint a time-limited publisher token for a channel.

    uid 0 lets Agora assign the numeric uid, our user ids are strings.
    """
    if not AGORA_APP_ID or not AGORA_APP_CERTIFICATE:
        logger.error(
            f"❌ Missing Agora credentials (app id: {bool(AGORA_APP_ID)}, "
            f"certificate: {bool(AGORA_APP_CERTIFICATE)})"
        )
        raise AgoraNotConfiguredError("Agora credentials not configured")

    current_ts = int(now if now is not None else time.time())
    privilege_expired_ts = current_ts + ttl_seconds

    token = RtcTokenBuilder.buildTokenWithUid(
        AGORA_APP_ID,
        AGORA_APP_CERTIFICATE,
        channel_name,
        uid,
        ROLE_PUBLISHER,
        privilege_expired_ts,
    )
    logger.info(f"✅ Agora token generated for channel {channel_name}")

    return {
        "token": token,
        "appId": AGORA_APP_ID,
        "channelName": channel_name,
        "uid": uid,
        "expiresAt": privilege_expired_ts,
    }
