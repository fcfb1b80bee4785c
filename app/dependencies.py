"""
Service providers for route dependencies.
Each service is built once per process from settings and is read-only afterwards.
"""

from functools import lru_cache

from core.er_gateway import ERGateway, build_gateway
from core.live_token import EphemeralTokenIssuer

from .config import get_settings


@lru_cache()
def get_gateway() -> ERGateway:
    """Get cached ER gateway (mock backend when MOCK_MODE is enabled)."""
    settings = get_settings()
    return build_gateway(
        api_key=settings.gemini_api_key,
        model=settings.er_model,
        mock=settings.mock_enabled
    )


@lru_cache()
def get_token_issuer() -> EphemeralTokenIssuer:
    """Get cached ephemeral token issuer."""
    settings = get_settings()
    return EphemeralTokenIssuer(
        api_key=settings.gemini_api_key,
        expire_minutes=settings.token_expire_minutes,
        new_session_minutes=settings.token_new_session_minutes,
        mock=settings.mock_enabled
    )
