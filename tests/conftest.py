import os
from types import SimpleNamespace
from typing import Any, Dict, Generator, List, Optional
from unittest.mock import patch

import pytest


@pytest.fixture(scope="session", autouse=True)
def mock_env() -> Generator[None, None, None]:
    """
    Deterministic environment for the whole session.

    Keeps local .env files and real credentials out of the tests.
    """
    env_vars = {
        "ENV": "dev",
        "OPENROUTER_API_KEY": "sk-or-test-key",
        "TENCENT_SECRET_ID": "test-secret-id",
        "TENCENT_SECRET_KEY": "test-secret-key",
        "OCR_RELAY_URL": "",
        "RESPONSE_STYLE": "text",
        "UI_VARIANT": "classic",
        "QA_TARGET_COUNT": "10",
    }
    with patch.dict(os.environ, env_vars):
        os.environ.pop("VERCEL_URL", None)
        yield


class FakeCompletions:
    """Stands in for OpenAI().chat.completions and records each call."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.content: Optional[str] = ""
        self.error: Optional[Exception] = None

    def create(self, **kwargs: Any):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        body = {
            "id": "gen-test",
            "choices": [{"index": 0, "message": {"role": "assistant", "content": self.content}}],
        }
        return SimpleNamespace(model_dump=lambda: body)


@pytest.fixture
def fake_llm(monkeypatch: pytest.MonkeyPatch) -> FakeCompletions:
    import llm_client

    completions = FakeCompletions()
    monkeypatch.setattr(llm_client, "_client", SimpleNamespace(chat=SimpleNamespace(completions=completions)))
    return completions


@pytest.fixture
def flask_app():
    import app as app_module

    app_module.app.config.update(TESTING=True)
    return app_module.app


@pytest.fixture
def client(flask_app):
    return flask_app.test_client()
