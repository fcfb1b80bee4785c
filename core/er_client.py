"""
Async HTTP client for the ER Vision Proxy.
Used by the frame sampler and the Live session to reach /frame and /token.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import httpx

from .detection import DetectionMode, DetectionResult, normalize_detections
from .errors import InferenceError, ResponseParseError, TokenIssuanceError
from .live_token import SessionToken

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "http://localhost:5050"


@dataclass
class FrameResult:
    result: DetectionResult
    latency_ms: int


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("error") or f"HTTP {response.status_code}"
    except ValueError:
        return f"HTTP {response.status_code}"


class ERProxyClient:
    """
    Thin wrapper over httpx.AsyncClient.

    Pass an existing AsyncClient to share a connection pool (or a MockTransport
    in tests); otherwise one is created and owned by this instance.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_SERVER_URL,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def detect(
        self,
        image_base64: str,
        mode: DetectionMode = DetectionMode.POINTS,
        queries: Optional[List[str]] = None,
        thinking_budget: int = 0
    ) -> FrameResult:
        payload = {
            "imageBase64": image_base64,
            "mode": DetectionMode(mode).value,
            "queries": list(queries or []),
            "thinkingBudget": thinking_budget,
        }
        try:
            response = await self.http.post("/frame", json=payload)
        except httpx.HTTPError as e:
            raise InferenceError(f"Proxy unreachable: {e}") from e

        if response.status_code != 200:
            raise InferenceError(_error_message(response))

        try:
            data = response.json()
        except ValueError:
            raise ResponseParseError("Proxy reply is not JSON", raw_text=response.text)

        return FrameResult(
            result=normalize_detections(data.get("results")),
            latency_ms=int(data.get("latencyMs", 0))
        )

    async def fetch_token(self, model: Optional[str] = None) -> SessionToken:
        body = {"model": model} if model else {}
        try:
            response = await self.http.post("/token", json=body)
        except httpx.HTTPError as e:
            raise TokenIssuanceError(f"Proxy unreachable: {e}") from e

        if response.status_code != 200:
            raise TokenIssuanceError(f"Failed to get token: {_error_message(response)}")

        try:
            return SessionToken.from_wire(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise TokenIssuanceError("Malformed token response") from e

    async def aclose(self):
        if self._owns_client:
            await self.http.aclose()
