"""
Detection result types and model-reply normalization.

The model replies with one of two JSON shapes:
    [{"point": [y, x], "label": "...", "box": [ymin, xmin, ymax, xmax]}, ...]
    {"trajectory": [[y, x], ...], "label": "..."}
All coordinates are normalized to 0-1000 in [y, x] order. Inside the codebase
the reply becomes an explicit tagged variant (PointsResult / TrajectoryResult).
"""

import json
import math
import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from .errors import ResponseParseError

logger = logging.getLogger(__name__)

NORMALIZED_SCALE = 1000

# ```json ... ``` or ``` ... ```
FENCED_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)

Coordinate = Tuple[float, float]
Box = Tuple[float, float, float, float]


class DetectionMode(str, Enum):
    """Inference modes accepted by the gateway."""
    POINTS = "points"
    BOXES = "boxes"
    TRAJECTORY = "trajectory"


@dataclass
class DetectionPoint:
    """One detected entity: a [y, x] point, optional label and optional box."""
    point: Coordinate
    label: Optional[str] = None
    box: Optional[Box] = None

    def to_wire(self) -> dict:
        data: dict = {"point": list(self.point)}
        if self.label is not None:
            data["label"] = self.label
        if self.box is not None:
            data["box"] = list(self.box)
        return data


@dataclass
class PointsResult:
    items: List[DetectionPoint] = field(default_factory=list)
    kind: str = "points"

    def to_wire(self) -> list:
        return [item.to_wire() for item in self.items]


@dataclass
class TrajectoryResult:
    path: List[Coordinate] = field(default_factory=list)
    label: str = ""
    kind: str = "trajectory"

    def to_wire(self) -> dict:
        return {"trajectory": [list(p) for p in self.path], "label": self.label}


DetectionResult = Union[PointsResult, TrajectoryResult]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _coords(value: Any, size: int, what: str) -> tuple:
    if not isinstance(value, (list, tuple)) or len(value) != size or not all(_is_number(v) for v in value):
        raise ResponseParseError(f"Invalid {what} in model reply: {value!r}")
    return tuple(value)


def _label(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def parse_model_json(text: str) -> Any:
    """
    Parse a model reply as JSON.

    Tries the whole text first, then the contents of each fenced code block
    in order. Raises ResponseParseError carrying the raw text when neither works.
    """
    raw = text or ""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass

    for match in FENCED_BLOCK_PATTERN.finditer(raw):
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            continue

    logger.warning(f"Model reply is not JSON ({len(raw)} chars)")
    raise ResponseParseError(f"Failed to parse ER response as JSON: {raw[:200]}", raw_text=raw)


def normalize_detections(data: Any, raw_text: Optional[str] = None) -> DetectionResult:
    """
    Turn parsed reply JSON into a tagged DetectionResult.

    A list of point entries becomes PointsResult, an object with a
    "trajectory" key becomes TrajectoryResult. Anything else, including a
    list that mixes in trajectory objects, is a protocol violation.
    """
    if isinstance(data, dict):
        if "trajectory" not in data:
            raise ResponseParseError("Model reply object has no 'trajectory' key", raw_text=raw_text)
        path = data["trajectory"]
        if not isinstance(path, list):
            raise ResponseParseError("Model reply 'trajectory' is not a list", raw_text=raw_text)
        try:
            coords = [_coords(p, 2, "trajectory point") for p in path]
        except ResponseParseError as e:
            e.raw_text = raw_text
            raise
        return TrajectoryResult(path=coords, label=_label(data.get("label")) or "")

    if isinstance(data, list):
        items = []
        for entry in data:
            if not isinstance(entry, dict):
                raise ResponseParseError(f"Unexpected entry in model reply: {entry!r}", raw_text=raw_text)
            if "trajectory" in entry:
                raise ResponseParseError("Model reply mixes points and trajectory", raw_text=raw_text)
            if "point" not in entry:
                raise ResponseParseError("Model reply entry has no 'point' key", raw_text=raw_text)
            try:
                point = _coords(entry["point"], 2, "point")
                box = _coords(entry["box"], 4, "box") if entry.get("box") is not None else None
            except ResponseParseError as e:
                e.raw_text = raw_text
                raise
            items.append(DetectionPoint(point=point, label=_label(entry.get("label")), box=box))
        return PointsResult(items=items)

    raise ResponseParseError(f"Unexpected model reply type: {type(data).__name__}", raw_text=raw_text)


def parse_detections(text: str) -> DetectionResult:
    """Parse raw model text straight into a DetectionResult."""
    return normalize_detections(parse_model_json(text), raw_text=text)
