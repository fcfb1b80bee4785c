"""
Gemini Robotics-ER Inference Gateway.
Builds the mode-specific prompt, sends one frame to the model and normalizes
the reply into a DetectionResult. Keeps no state between requests.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

from google import genai
from google.genai import types

from .detection import DetectionMode, DetectionResult, parse_detections
from .errors import ERProxyError, InferenceError, ValidationError, redact_secrets
from .prompts import build_prompt

logger = logging.getLogger(__name__)

DEFAULT_ER_MODEL = "gemini-robotics-er-1.5-preview"
DEFAULT_TEMPERATURE = 0.5


@dataclass
class FrameRequest:
    """One captured frame on its way to the model. Consumed once."""
    image: bytes
    mode: DetectionMode = DetectionMode.POINTS
    queries: List[str] = field(default_factory=list)
    thinking_budget: int = 0

    def __post_init__(self):
        try:
            self.mode = DetectionMode(self.mode)
        except ValueError:
            allowed = ", ".join(m.value for m in DetectionMode)
            raise ValidationError(f"mode must be one of: {allowed}")
        if isinstance(self.thinking_budget, bool) or not isinstance(self.thinking_budget, int):
            raise ValidationError("thinkingBudget must be an integer")
        if self.thinking_budget < 0:
            raise ValidationError("thinkingBudget must be >= 0")
        if not self.image:
            raise ValidationError("imageBase64 is required")
        self.queries = [str(q) for q in self.queries]


class InferenceBackend(Protocol):
    async def generate(self, image: bytes, prompt: str, thinking_budget: int) -> str:
        """Return the raw model text for one image + prompt."""
        ...


class GeminiERBackend:
    """Calls Gemini Robotics-ER through the google-genai async client."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_ER_MODEL,
        temperature: float = DEFAULT_TEMPERATURE
    ):
        if not api_key:
            raise ValueError("GEMINI_API_KEY not set")

        self.model = model
        self.temperature = temperature
        self.client = genai.Client(api_key=api_key)
        logger.info(f"Gemini ER backend initialized (model={model})")

    async def generate(self, image: bytes, prompt: str, thinking_budget: int) -> str:
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=[
                types.Part.from_bytes(data=image, mime_type="image/jpeg"),
                prompt
            ],
            config=types.GenerateContentConfig(
                temperature=self.temperature,
                thinking_config=types.ThinkingConfig(thinking_budget=thinking_budget)
            )
        )
        return response.text or ""


class MockERBackend:
    """
    Deterministic stand-in for local development (MOCK_MODE).
    Reads the prompt the same way the model would and answers in the requested shape.
    """

    async def generate(self, image: bytes, prompt: str, thinking_budget: int) -> str:
        if '"trajectory"' in prompt:
            goal = re.search(r"^Goal: (.+)\.$", prompt, re.MULTILINE)
            label = goal.group(1) if goal else "goal"
            path = [[900 - i * 80, 500 + (i % 2) * 20] for i in range(7)]
            return json.dumps({"trajectory": path, "label": label})

        wanted = re.search(r"^Only return labels for: (.+)\.$", prompt, re.MULTILINE)
        labels = [part.strip() for part in wanted.group(1).split(",")] if wanted else ["object"]
        with_boxes = '"box"' in prompt

        items = []
        for i, label in enumerate(labels[:10]):
            y, x = 500, 100 + (i * 80) % 800
            item = {"point": [y, x], "label": label}
            if with_boxes:
                item["box"] = [y - 50, x - 40, y + 50, x + 40]
            items.append(item)
        return json.dumps(items)


class ERGateway:
    """
    Stateless proxy in front of an InferenceBackend.

    Upstream failures become InferenceError with secrets redacted, replies that
    are not JSON become ResponseParseError. Nothing is retried here.
    """

    def __init__(self, backend: InferenceBackend, secrets: Sequence[str] = ()):
        self.backend = backend
        self._secrets = tuple(s for s in secrets if s)

    async def detect(self, request: FrameRequest) -> DetectionResult:
        prompt = build_prompt(request.mode, request.queries)
        logger.debug(f"ER request mode={request.mode.value} queries={request.queries} "
                     f"budget={request.thinking_budget} image={len(request.image)}B")
        return await self.run(request.image, prompt, request.thinking_budget)

    async def run(self, image: bytes, prompt: str, thinking_budget: int = 0) -> DetectionResult:
        try:
            text = await self.backend.generate(image, prompt, thinking_budget)
        except ERProxyError:
            raise
        except Exception as e:
            message = redact_secrets(str(e) or type(e).__name__, self._secrets)
            logger.error(f"ER call failed: {message}")
            raise InferenceError(message) from e

        return parse_detections(text)


def build_gateway(api_key: str, model: str = DEFAULT_ER_MODEL, mock: bool = False) -> ERGateway:
    """Create a gateway for the configured backend."""
    if mock:
        logger.warning("MOCK_MODE enabled: ER replies are canned")
        return ERGateway(MockERBackend())
    return ERGateway(GeminiERBackend(api_key=api_key, model=model), secrets=[api_key])
