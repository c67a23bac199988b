import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import openai
import pytest

from verdade.errors import (
    MissingCredentials,
    UpstreamAuthError,
    UpstreamPermissionDenied,
    UpstreamRateLimited,
    UpstreamTransportError,
)
from verdade.llm_client import LLM_MAX_ATTEMPTS, FactCheckClient
from verdade.models import VerificationRequest
from verdade.prompt import build_prompt


REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def completion(text):
    message = SimpleNamespace(content=text)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _status_error(cls, status):
    return cls("upstream said no", response=httpx.Response(status, request=REQUEST), body=None)


def _complete(fc, create):
    payload = build_prompt(VerificationRequest(text="O Brasil tem 27 unidades federativas"))
    with patch.object(fc.client.chat.completions, "create", create):
        return asyncio.run(fc.complete(payload))


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY")

    with pytest.raises(MissingCredentials):
        FactCheckClient()


def test_model_from_env(monkeypatch):
    monkeypatch.setenv("LLM_MODEL", "gpt-4o")

    assert FactCheckClient().model == "gpt-4o"


def test_sends_system_and_user_content():
    fc = FactCheckClient(model="gpt-4o-mini")
    create = AsyncMock(return_value=completion('{"veredito": "VERDADEIRO"}'))

    assert _complete(fc, create) == '{"veredito": "VERDADEIRO"}'

    kwargs = create.await_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    system, user = kwargs["messages"]
    assert system["role"] == "system" and "SEM_EVIDENCIAS" in system["content"]
    assert user["role"] == "user"
    assert user["content"][0]["type"] == "text"


def test_empty_reply_is_empty_string():
    fc = FactCheckClient()

    assert _complete(fc, AsyncMock(return_value=completion(None))) == ""


def test_auth_error_is_not_retried():
    fc = FactCheckClient()
    create = AsyncMock(side_effect=_status_error(openai.AuthenticationError, 401))

    with pytest.raises(UpstreamAuthError):
        _complete(fc, create)
    assert create.await_count == 1


def test_rate_limit_is_retried_then_surfaced():
    fc = FactCheckClient()
    create = AsyncMock(side_effect=_status_error(openai.RateLimitError, 429))

    with pytest.raises(UpstreamRateLimited):
        _complete(fc, create)
    assert create.await_count == LLM_MAX_ATTEMPTS


def test_transient_failure_recovers():
    fc = FactCheckClient()
    create = AsyncMock(side_effect=[
        openai.APIConnectionError(request=REQUEST),
        completion('{"veredito": "FALSO"}'),
    ])

    if LLM_MAX_ATTEMPTS < 2:
        pytest.skip("retries disabled")
    assert _complete(fc, create) == '{"veredito": "FALSO"}'


def test_timeout_becomes_transport_error():
    fc = FactCheckClient()
    create = AsyncMock(side_effect=openai.APITimeoutError(request=REQUEST))

    with pytest.raises(UpstreamTransportError):
        _complete(fc, create)


def test_bad_request_becomes_transport_error():
    fc = FactCheckClient()
    create = AsyncMock(side_effect=_status_error(openai.BadRequestError, 400))

    with pytest.raises(UpstreamTransportError):
        _complete(fc, create)
    assert create.await_count == 1


def test_permission_denied_keeps_403():
    fc = FactCheckClient()
    create = AsyncMock(side_effect=_status_error(openai.PermissionDeniedError, 403))

    with pytest.raises(UpstreamPermissionDenied) as excinfo:
        _complete(fc, create)
    assert excinfo.value.status_code == 403
    assert create.await_count == 1
