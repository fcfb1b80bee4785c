"""
Live session client.

Owns one ephemeral token (refreshed ahead of its early-expiry marker), an
optional frame sampler and the device handles the session captured from.
Stopping the session cancels the sampler and the refresh timer and releases
every device together.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol, Sequence

from .er_client import ERProxyClient
from .frame_sampler import FrameSampler
from .live_token import SessionToken

logger = logging.getLogger(__name__)

REFRESH_LEAD_SECONDS = 90.0
RETRY_DELAY_SECONDS = 15.0
MIN_REFRESH_DELAY_SECONDS = 1.0


class MediaDevice(Protocol):
    def release(self) -> None:
        ...


def refresh_delay(
    token: SessionToken,
    now: Optional[datetime] = None,
    lead: float = REFRESH_LEAD_SECONDS,
    minimum: float = MIN_REFRESH_DELAY_SECONDS
) -> float:
    """Seconds to wait before refreshing so the swap lands `lead` seconds before early expiry."""
    now = now or datetime.now(timezone.utc)
    remaining = (token.early_expire_time - now).total_seconds()
    return max(minimum, remaining - lead)


class LiveSession:
    """One browser-equivalent Live session. Nothing here is shared across sessions."""

    def __init__(
        self,
        client: ERProxyClient,
        model: Optional[str] = None,
        sampler: Optional[FrameSampler] = None,
        devices: Sequence[MediaDevice] = (),
        refresh_lead: float = REFRESH_LEAD_SECONDS,
        retry_delay: float = RETRY_DELAY_SECONDS,
        min_refresh_delay: float = MIN_REFRESH_DELAY_SECONDS,
        on_token: Optional[Callable[[SessionToken], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None
    ):
        self.client = client
        self.model = model
        self.sampler = sampler
        self.devices: List[MediaDevice] = list(devices)
        if sampler is not None and sampler.source not in self.devices:
            self.devices.append(sampler.source)

        self.refresh_lead = refresh_lead
        self.retry_delay = retry_delay
        self.min_refresh_delay = min_refresh_delay
        self.on_token = on_token
        self.on_error = on_error

        self.active = False
        self.refresh_count = 0
        self._token: Optional[SessionToken] = None
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def token(self) -> Optional[SessionToken]:
        return self._token

    async def start(self):
        if self.active:
            return

        try:
            self._token = await self.client.fetch_token(self.model)
        except Exception:
            logger.error("Live session start failed, releasing devices")
            await self.stop()
            raise

        self.active = True
        self._refresh_task = asyncio.create_task(self._refresh_loop())
        if self.sampler is not None:
            self.sampler.start()
        logger.info(f"Live session started, token valid for new sessions until {self._token.early_expire_time}")

    def _next_delay(self, token: SessionToken) -> float:
        return refresh_delay(token, lead=self.refresh_lead, minimum=self.min_refresh_delay)

    async def _refresh_loop(self):
        delay = self._next_delay(self._token)
        while True:
            logger.debug(f"Token refresh in {delay:.1f}s")
            await asyncio.sleep(delay)
            try:
                new_token = await self.client.fetch_token(self.model)
            except Exception as e:
                # keep the current token until the next attempt
                logger.error(f"Failed to refresh token: {e}")
                if self.on_error:
                    self.on_error(e)
                delay = self.retry_delay
                continue

            self._token = new_token
            self.refresh_count += 1
            logger.info("Token refreshed successfully")
            if self.on_token:
                self.on_token(new_token)
            delay = self._next_delay(new_token)

    async def stop(self):
        """Cancel capture, cancel the refresh timer and release devices, in that order, always all three."""
        errors: List[Exception] = []

        if self.sampler is not None:
            try:
                await self.sampler.stop()
            except Exception as e:
                errors.append(e)

        if self._refresh_task is not None:
            self._refresh_task.cancel()
            await asyncio.gather(self._refresh_task, return_exceptions=True)
            self._refresh_task = None

        for device in self.devices:
            try:
                device.release()
            except Exception as e:
                logger.warning(f"Device release failed: {e}")
                errors.append(e)

        self._token = None
        self.active = False
        logger.info("Live session stopped")

        if errors:
            raise errors[0]
