import asyncio
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from core.errors import TokenIssuanceError
from core.live_token import (
    ISSUANCE_FAILED_MESSAGE,
    EphemeralTokenIssuer,
    SessionToken,
    isoformat_utc,
    parse_isoformat,
)


class FakeAuthTokens:
    def __init__(self, name="auth_tokens/xyz", error=None):
        self.name = name
        self.error = error
        self.configs = []

    async def create(self, config):
        self.configs.append(config)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(name=self.name)


def make_issuer(api_key, auth_tokens):
    issuer = EphemeralTokenIssuer(api_key=api_key, expire_minutes=30, new_session_minutes=10)
    issuer.client = SimpleNamespace(aio=SimpleNamespace(auth_tokens=auth_tokens))
    return issuer


def test_issue_requests_single_use_scoped_token(api_key):
    auth_tokens = FakeAuthTokens()
    token = asyncio.run(make_issuer(api_key, auth_tokens).issue("gemini-live-test"))

    assert token.token == "auth_tokens/xyz"
    assert token.early_expire_time < token.expire_time
    config = auth_tokens.configs[0]
    assert config["uses"] == 1
    assert config["live_connect_constraints"]["model"] == "gemini-live-test"
    assert config["http_options"] == {"api_version": "v1alpha"}
    assert config["expire_time"] - config["new_session_expire_time"] == timedelta(minutes=20)


def test_issue_failure_is_generic(api_key):
    auth_tokens = FakeAuthTokens(error=RuntimeError(f"permission denied for {api_key}"))
    with pytest.raises(TokenIssuanceError) as excinfo:
        asyncio.run(make_issuer(api_key, auth_tokens).issue("gemini-live-test"))

    assert excinfo.value.message == ISSUANCE_FAILED_MESSAGE
    assert api_key not in str(excinfo.value)


def test_issuer_never_falls_back_to_root_key(api_key):
    auth_tokens = FakeAuthTokens(name=api_key)
    with pytest.raises(TokenIssuanceError):
        asyncio.run(make_issuer(api_key, auth_tokens).issue("gemini-live-test"))


def test_issuer_rejects_empty_token(api_key):
    with pytest.raises(TokenIssuanceError):
        asyncio.run(make_issuer(api_key, FakeAuthTokens(name="")).issue("m"))


def test_mock_issuer_needs_no_key():
    issuer = EphemeralTokenIssuer(api_key="", mock=True)
    token = asyncio.run(issuer.issue("m"))
    assert token.token.startswith("mock-ephemeral-")
    assert issuer.client is None


def test_real_issuer_requires_key():
    with pytest.raises(ValueError):
        EphemeralTokenIssuer(api_key="")


def test_token_repr_hides_secret():
    now = datetime.now(timezone.utc)
    token = SessionToken("super-secret-token", now, now)
    assert "super-secret-token" not in repr(token)


def test_wire_timestamps():
    moment = datetime(2026, 3, 4, 5, 6, 7, 891000, tzinfo=timezone.utc)
    assert isoformat_utc(moment) == "2026-03-04T05:06:07.891Z"
    assert parse_isoformat("2026-03-04T05:06:07.891Z") == moment

    token = SessionToken("t", moment + timedelta(minutes=30), moment)
    assert SessionToken.from_wire(token.to_wire()) == token
