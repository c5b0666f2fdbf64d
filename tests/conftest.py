from __future__ import annotations

from typing import Iterator

import pytest

from atpagent.apps.api import deps


class ScriptedLLM:
    """Returns canned replies in order and records every prompt it saw."""

    def __init__(self, replies: list[str]) -> None:
        self.replies = list(replies)
        self.prompts: list[str] = []

    def complete_text(self, system: str | None, user: str, max_tokens: int | None = None, temperature: float | None = None) -> str:
        self.prompts.append(user)
        return self.replies.pop(0)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("ATP_LLM_PROVIDER", "off")
    monkeypatch.setenv("ATP_LOG_TO_FILE", "off")
    monkeypatch.delenv("ATP_LLM_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("ATP_SANDBOX_TIMEOUT_MS", raising=False)
    monkeypatch.delenv("ATP_SANDBOX_MAX_TIMEOUT_MS", raising=False)
    monkeypatch.delenv("ATP_SANDBOX_STARTUP_TIMEOUT_S", raising=False)
    deps.reset_dependencies()
    yield
    deps.reset_dependencies()


@pytest.fixture
def scripted_llm():
    return ScriptedLLM
