"""
ER Vision Proxy Live Router
Ephemeral token endpoint for browser Live sessions.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends

from ..config import Settings, get_settings
from ..dependencies import get_token_issuer
from ..models import LiveTokenRequest, LiveTokenResponse
from core.errors import TokenIssuanceError, redact_secrets
from core.live_token import EphemeralTokenIssuer, ISSUANCE_FAILED_MESSAGE

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])


@router.post("/token", response_model=LiveTokenResponse)
async def create_live_token(
    request: Optional[LiveTokenRequest] = None,
    issuer: EphemeralTokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings)
):
    """
    Issue a single-use Live token.
    Failures return a generic error; the root API key never leaves the server.
    """
    model = (request.model if request else None) or settings.live_model
    try:
        token = await issuer.issue(model)
    except TokenIssuanceError as e:
        raise HTTPException(status_code=500, detail=e.message)
    except Exception as e:
        logger.error(f"Live token error: {redact_secrets(str(e), [settings.gemini_api_key])}")
        raise HTTPException(status_code=500, detail=ISSUANCE_FAILED_MESSAGE)

    return LiveTokenResponse(**token.to_wire())
