import pytest

from core.detection import DetectionMode
from core.prompts import EMPTY_RESULT_INSTRUCTION, build_prompt


def test_points_prompt_restricted_to_queries():
    prompt = build_prompt(DetectionMode.POINTS, ["banana"])
    assert prompt.startswith("Point to up to 10 items in the image.")
    assert "Only return labels for: banana." in prompt
    assert prompt.endswith(EMPTY_RESULT_INSTRUCTION)


def test_points_prompt_without_queries_has_no_filter():
    prompt = build_prompt("points", [])
    assert "Only return labels for" not in prompt
    assert "normalized to 0-1000" in prompt
    assert EMPTY_RESULT_INSTRUCTION in prompt


def test_boxes_prompt_asks_for_box_and_joins_queries():
    prompt = build_prompt("boxes", ["cup", " plate ", ""])
    assert '"box": [ymin, xmin, ymax, xmax]' in prompt
    assert "Only return labels for: cup, plate." in prompt
    assert prompt.endswith(EMPTY_RESULT_INSTRUCTION)


def test_trajectory_prompt_uses_first_query_as_goal():
    prompt = build_prompt("trajectory", ["red mug", "table"])
    assert '"trajectory"' in prompt
    assert "at least 5 intermediate points" in prompt
    assert "Goal: red mug." in prompt
    assert "table" not in prompt
    assert EMPTY_RESULT_INSTRUCTION not in prompt


def test_trajectory_prompt_without_goal():
    assert "Goal:" not in build_prompt("trajectory")


def test_unknown_mode_rejected():
    with pytest.raises(ValueError):
        build_prompt("polygons", [])
