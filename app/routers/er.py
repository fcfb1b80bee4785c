"""
ER Vision Proxy ER Router
Frame inference and latency benchmark endpoints.
"""

import time
import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends

from ..config import Settings, get_settings
from ..dependencies import get_gateway
from ..models import (
    ERFrameRequest,
    ERFrameResponse,
    BenchmarkRequest,
    BenchmarkResponse,
)
from core.benchmark import run_latency_benchmark
from core.er_gateway import ERGateway, FrameRequest
from core.errors import ERProxyError, redact_secrets
from core.frame_encoder import decode_image_base64

logger = logging.getLogger(__name__)

router = APIRouter(tags=["er"])


@router.post("/frame", response_model=ERFrameResponse, response_model_exclude_none=True)
async def process_frame(
    request: ERFrameRequest,
    gateway: ERGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings)
):
    """
    Run ER inference on one captured frame.
    Returns point detections or a trajectory plus the round-trip latency.
    """
    try:
        frame = FrameRequest(
            image=decode_image_base64(request.image_base64, settings.max_image_bytes),
            mode=request.mode,
            queries=request.queries,
            thinking_budget=request.thinking_budget
        )

        start = time.perf_counter()
        result = await gateway.detect(frame)
        latency_ms = round((time.perf_counter() - start) * 1000)

        logger.info(f"ER frame mode={frame.mode.value} kind={result.kind} latency={latency_ms}ms")
        return ERFrameResponse(results=result.to_wire(), latency_ms=latency_ms, kind=result.kind)

    except ERProxyError as e:
        if e.status_code >= 500:
            logger.error(f"ER frame failed: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        message = redact_secrets(str(e) or "Internal server error", [settings.gemini_api_key])
        logger.error(f"ER frame error: {message}")
        raise HTTPException(status_code=500, detail=message)


@router.post("/benchmark/latency", response_model=BenchmarkResponse, response_model_exclude_none=True)
async def benchmark_latency(
    request: Optional[BenchmarkRequest] = None,
    gateway: ERGateway = Depends(get_gateway)
):
    """
    Latency micro-benchmark: N sequential ER calls with a fixed 1x1 image.
    Iterations outside 1-100 are rejected before any upstream call.
    """
    request = request or BenchmarkRequest()
    try:
        report = await run_latency_benchmark(gateway, request.iterations)
    except ERProxyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return BenchmarkResponse(**asdict(report))
