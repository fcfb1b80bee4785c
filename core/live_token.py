"""
Ephemeral Live session tokens.
Issues single-use, short-lived credentials so the browser never holds the root API key.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from google import genai

from .errors import TokenIssuanceError, redact_secrets

logger = logging.getLogger(__name__)

DEFAULT_LIVE_MODEL = "gemini-2.5-flash-native-audio-preview-09-2025"
TOKEN_API_VERSION = "v1alpha"

ISSUANCE_FAILED_MESSAGE = "Failed to create ephemeral token"


def isoformat_utc(moment: datetime) -> str:
    """ISO-8601 with millisecond precision and a Z suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_isoformat(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True)
class SessionToken:
    """
    A single-use Live credential and its two expiry markers.

    expire_time is the hard expiry. early_expire_time is the point after which
    no new session may be opened with this token, so refreshes aim before it.
    """
    token: str = field(repr=False)
    expire_time: datetime
    early_expire_time: datetime

    def to_wire(self) -> dict:
        return {
            "token": self.token,
            "expireTime": isoformat_utc(self.expire_time),
            "newSessionExpireTime": isoformat_utc(self.early_expire_time),
        }

    @classmethod
    def from_wire(cls, data: dict) -> "SessionToken":
        return cls(
            token=data["token"],
            expire_time=parse_isoformat(data["expireTime"]),
            early_expire_time=parse_isoformat(data["newSessionExpireTime"]),
        )


class EphemeralTokenIssuer:
    """
    Asks the provider for a single-use token scoped to one Live model.

    Failure is a hard stop: a generic TokenIssuanceError, never the root key
    and never the upstream error text.
    """

    def __init__(
        self,
        api_key: str,
        expire_minutes: int = 30,
        new_session_minutes: int = 10,
        mock: bool = False
    ):
        self._api_key = api_key
        self.expire_minutes = expire_minutes
        self.new_session_minutes = new_session_minutes
        self.mock = mock
        self.client: Optional[genai.Client] = None

        if not mock:
            if not api_key:
                raise ValueError("GEMINI_API_KEY not set")
            self.client = genai.Client(
                api_key=api_key,
                http_options={"api_version": TOKEN_API_VERSION}
            )

    def _expiry_markers(self) -> tuple[datetime, datetime]:
        now = datetime.now(timezone.utc)
        return (
            now + timedelta(minutes=self.expire_minutes),
            now + timedelta(minutes=self.new_session_minutes),
        )

    async def issue(self, model: str = DEFAULT_LIVE_MODEL) -> SessionToken:
        expire_time, new_session_expire_time = self._expiry_markers()

        if self.mock:
            logger.info(f"Issued mock ephemeral token for {model}")
            return SessionToken(f"mock-ephemeral-{uuid.uuid4().hex}", expire_time, new_session_expire_time)

        config = {
            "uses": 1,
            "expire_time": expire_time,
            "new_session_expire_time": new_session_expire_time,
            "live_connect_constraints": {
                "model": model,
                "config": {"response_modalities": ["AUDIO"]},
            },
            "http_options": {"api_version": TOKEN_API_VERSION},
        }

        try:
            auth_token = await self.client.aio.auth_tokens.create(config=config)
        except Exception as e:
            logger.error(f"Ephemeral token request failed: {redact_secrets(str(e), [self._api_key])}")
            raise TokenIssuanceError(ISSUANCE_FAILED_MESSAGE) from e

        token = getattr(auth_token, "name", None)
        if not token or token == self._api_key:
            logger.error("Ephemeral token response had no usable token")
            raise TokenIssuanceError(ISSUANCE_FAILED_MESSAGE)

        logger.info(f"Issued ephemeral token for {model}, new sessions until {isoformat_utc(new_session_expire_time)}")
        return SessionToken(token, expire_time, new_session_expire_time)
