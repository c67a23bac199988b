"""
Pytest configuration and fixtures
"""
from unittest.mock import AsyncMock, patch

import pytest


@pytest.fixture(autouse=True)
def llm_env(monkeypatch):
    """Fake credentials and the built-in prompt; no test talks to the real model."""
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.delenv("SYSTEM_PROMPT_PATH", raising=False)


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from verdade.main import app

    return TestClient(app)


@pytest.fixture
def model_reply():
    """Patch the upstream client used by the endpoint; set ``.return_value`` to the raw reply."""
    with patch("verdade.main.FactCheckClient") as cls:
        complete = AsyncMock(return_value="{}")
        cls.return_value.complete = complete
        yield complete
