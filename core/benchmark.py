"""
Latency micro-benchmark for the ER inference path.

Sends a fixed 1x1 JPEG with a fixed prompt N times in sequence. This measures
API round-trip latency only, not realistic-payload latency.
"""

import base64
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from .er_gateway import ERGateway
from .errors import ValidationError
from .prompts import BENCHMARK_PROMPT

logger = logging.getLogger(__name__)

MIN_ITERATIONS = 1
MAX_ITERATIONS = 100
DEFAULT_ITERATIONS = 10

# 1x1 pixel JPEG
TEST_IMAGE_BASE64 = (
    "/9j/4AAQSkZJRgABAQAAAQABAAD/2wBDAAgGBgcGBQgHBwcJCQgKDBQNDAsLDBkSEw8UHRofHh0aHBwgJC4nICIsIxwcKDcpLDAxNDQ0Hyc5PTgyPC4zNDL/"
    "2wBDAQkJCQwLDBgNDRgyIRwhMjIyMjIyMjIyMjIyMjIyMjIyMjIyMjIyMjIyMjIyMjIyMjIyMjIyMjIyMjIyMjIyMjL/wAARCAABAAEDASIAAhEBAxEB/"
    "8QAFQABAQAAAAAAAAAAAAAAAAAAAAv/xAAUEAEAAAAAAAAAAAAAAAAAAAAA/8QAFQEBAQAAAAAAAAAAAAAAAAAAAAX/xAAUEQEAAAAAAAAAAAAAAAAAAAAA/"
    "9oADAMBAAIRAxEAPwCwAA8A/9k="
)
TEST_IMAGE = base64.b64decode(TEST_IMAGE_BASE64)


@dataclass
class IterationResult:
    iteration: int
    latency: int
    status: str
    error: Optional[str] = None


@dataclass
class BenchmarkReport:
    iterations: int
    success_count: int = 0
    failure_count: int = 0
    avg_latency: int = 0
    min_latency: int = 0
    max_latency: int = 0
    results: List[IterationResult] = field(default_factory=list)


def validate_iterations(iterations) -> int:
    if isinstance(iterations, bool) or not isinstance(iterations, int):
        raise ValidationError("iterations must be an integer")
    if not MIN_ITERATIONS <= iterations <= MAX_ITERATIONS:
        raise ValidationError(f"iterations must be between {MIN_ITERATIONS} and {MAX_ITERATIONS}")
    return iterations


async def run_latency_benchmark(gateway: ERGateway, iterations: int = DEFAULT_ITERATIONS) -> BenchmarkReport:
    """
    Run sequential ER calls and summarize latencies in milliseconds.

    Iterations are validated before any upstream call is made. Failures are
    recorded per iteration and never abort the run.
    """
    iterations = validate_iterations(iterations)
    report = BenchmarkReport(iterations=iterations)
    latencies: List[int] = []

    for i in range(iterations):
        start = time.perf_counter()
        try:
            await gateway.run(TEST_IMAGE, BENCHMARK_PROMPT, 0)
        except Exception as e:
            latency = round((time.perf_counter() - start) * 1000)
            report.results.append(IterationResult(i + 1, latency, "failure", str(e)))
            report.failure_count += 1
            continue

        latency = round((time.perf_counter() - start) * 1000)
        report.results.append(IterationResult(i + 1, latency, "success"))
        latencies.append(latency)
        report.success_count += 1

    if latencies:
        report.avg_latency = round(sum(latencies) / len(latencies))
        report.min_latency = min(latencies)
        report.max_latency = max(latencies)

    logger.info(f"Benchmark: {report.success_count}/{iterations} ok, avg {report.avg_latency}ms")
    return report
