import os

# Settings are read at import time by app.main
FAKE_API_KEY = "AIza" + "SyTestKeyNotReal0123456789abcdefghi"
os.environ.setdefault("GEMINI_API_KEY", FAKE_API_KEY)
os.environ.setdefault("MOCK_MODE", "false")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.dependencies import get_gateway, get_token_issuer
from core.benchmark import TEST_IMAGE_BASE64
from core.er_gateway import ERGateway
from fakes import FakeBackend


@pytest.fixture
def api_key():
    return os.environ["GEMINI_API_KEY"]


@pytest.fixture
def test_image_base64():
    return TEST_IMAGE_BASE64


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(backend, api_key):
    app.dependency_overrides[get_gateway] = lambda: ERGateway(backend, secrets=[api_key])
    yield TestClient(app)
    app.dependency_overrides.pop(get_gateway, None)
    app.dependency_overrides.pop(get_token_issuer, None)
