"""
Prompt templates for Gemini Robotics-ER frame inference.
"""

from typing import List, Sequence

from .detection import DetectionMode

POINTS_PROMPT = """Point to up to 10 items in the image.
Return JSON array: [{"point": [y, x], "label": "<name>"}].
Points are [y, x] normalized to 0-1000."""

BOXES_PROMPT = """Detect up to 10 objects in the image.
Return JSON array: [{"point": [y, x], "label": "<name>", "box": [ymin, xmin, ymax, xmax]}].
Points and boxes are normalized to 0-1000."""

TRAJECTORY_PROMPT = """Plan a trajectory to reach the goal in the image.
Return JSON: {"trajectory": [[y, x], ...], "label": "<goal>"}.
Include at least 5 intermediate points. Points are [y, x] normalized to 0-1000."""

EMPTY_RESULT_INSTRUCTION = "If the item is not visible, return an empty array."

# Fixed micro-benchmark prompt, measures round-trip latency only
BENCHMARK_PROMPT = 'Return JSON array: [{"point": [500, 500], "label": "test"}]'


def build_prompt(mode: DetectionMode, queries: Sequence[str] = ()) -> str:
    """
    Build the instruction for one inference mode.

    Args:
        mode: points, boxes or trajectory
        queries: Label filter for points/boxes, goal (first entry) for trajectory

    Returns:
        Prompt text sent alongside the frame
    """
    mode = DetectionMode(mode)
    queries = [q.strip() for q in queries if q and q.strip()]

    if mode is DetectionMode.TRAJECTORY:
        lines: List[str] = [TRAJECTORY_PROMPT]
        if queries:
            lines.append(f"Goal: {queries[0]}.")
        return "\n".join(lines)

    lines = [POINTS_PROMPT if mode is DetectionMode.POINTS else BOXES_PROMPT]
    if queries:
        lines.append(f"Only return labels for: {', '.join(queries)}.")
    lines.append(EMPTY_RESULT_INSTRUCTION)
    return "\n".join(lines)
