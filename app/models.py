"""
ER Vision Proxy Pydantic Models
Request/Response schemas for API endpoints (camelCase on the wire).
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional, Tuple, Union

Number = Union[int, float]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ===== Detection shapes =====

class DetectionPoint(BaseModel):
    """One detected entity, coordinates normalized 0-1000 in [y, x] order."""
    point: Tuple[Number, Number]
    label: Optional[str] = None
    box: Optional[Tuple[Number, Number, Number, Number]] = Field(None, description="[ymin, xmin, ymax, xmax]")


class Trajectory(BaseModel):
    """Planned path, [[y, x], ...] normalized 0-1000."""
    trajectory: List[Tuple[Number, Number]]
    label: str


# ===== /frame =====

class ERFrameRequest(CamelModel):
    """Request to run ER inference on one captured frame."""
    image_base64: Optional[str] = Field(None, description="Base64 JPEG, optionally as a data URI")
    mode: str = Field("points", description="points, boxes or trajectory")
    queries: List[str] = Field(default_factory=list, description="Label filter, or goal for trajectory")
    thinking_budget: int = Field(0, strict=True, description="Thinking token budget, 0 disables thinking")


class ERFrameResponse(CamelModel):
    results: Union[List[DetectionPoint], Trajectory]
    latency_ms: int
    kind: Literal["points", "trajectory"]


# ===== /token =====

class LiveTokenRequest(CamelModel):
    model: Optional[str] = Field(None, description="Live model the token is scoped to")


class LiveTokenResponse(CamelModel):
    token: str
    expire_time: str
    new_session_expire_time: str


# ===== /benchmark/latency =====

class BenchmarkRequest(CamelModel):
    iterations: int = Field(10, strict=True, description="Sequential calls to run (1-100)")


class BenchmarkIteration(CamelModel):
    iteration: int
    latency: int
    status: Literal["success", "failure"]
    error: Optional[str] = None


class BenchmarkResponse(CamelModel):
    iterations: int
    success_count: int
    failure_count: int
    avg_latency: int
    min_latency: int
    max_latency: int
    results: List[BenchmarkIteration] = Field(default_factory=list)


# ===== misc =====

class HealthResponse(BaseModel):
    status: str
    timestamp: str


class ErrorResponse(BaseModel):
    error: str
