from __future__ import annotations

from fastapi.testclient import TestClient

from atpagent.apps.api.main import app


def _scripted_complete_text(monkeypatch, replies: list[str]) -> list[str]:
    prompts: list[str] = []
    queue = list(replies)

    def fake(self, system, user, max_tokens=None, temperature=None):
        prompts.append(user)
        return queue.pop(0)

    monkeypatch.setattr("atpagent.core.models.llm_provider.AtpLLM.complete_text", fake)
    return prompts


def test_health_endpoints() -> None:
    with TestClient(app) as client:
        health = client.get("/health")
        healthz = client.get("/healthz")

    assert health.status_code == 200
    assert health.json() == {"status": "ok"}
    payload = healthz.json()
    assert payload["ok"] is True
    assert payload["llm"]["provider"] == "off"
    assert payload["llm"]["configured"] is False
    assert payload["llm"]["api_key_present"] is False
    assert payload["sandbox"] == {"timeout_ms": 15000, "max_timeout_ms": 60000}


def test_correlation_id_is_echoed() -> None:
    with TestClient(app) as client:
        response = client.get("/health", headers={"X-Correlation-ID": "abc-123"})

    assert response.headers["X-Correlation-ID"] == "abc-123"


def test_execute_returns_last_expression() -> None:
    with TestClient(app) as client:
        response = client.post("/api/execute", json={"code": "1+1"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["result"] == 2
    assert isinstance(payload["executionTime"], int)


def test_execute_exposes_context_and_capabilities() -> None:
    code = 'prs = await api.github.list_prs(repo=repo)\n[p["number"] for p in prs][:limit]'

    with TestClient(app) as client:
        response = client.post("/api/execute", json={"code": code, "context": {"repo": "a/b", "limit": 3}})

    assert response.json()["result"] == [1, 2, 3]


def test_execute_requires_code() -> None:
    with TestClient(app) as client:
        missing = client.post("/api/execute", json={})
        empty = client.post("/api/execute", json={"code": ""})

    assert missing.status_code == 400
    assert missing.json() == {"error": "Code is required"}
    assert empty.status_code == 400


def test_execute_rejects_invalid_context_keys() -> None:
    with TestClient(app) as client:
        response = client.post("/api/execute", json={"code": "1", "context": {"__builtins__": 1, "ok": 2}})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid context keys: __builtins__"}


def test_execute_timeout_is_reported() -> None:
    with TestClient(app) as client:
        response = client.post("/api/execute", json={"code": "while True:\n    pass", "timeout": 200})

    assert response.status_code == 500
    payload = response.json()
    assert payload["success"] is False
    assert payload["kind"] == "timeout"
    assert payload["error"] == "Script execution timed out after 200ms"


def test_execute_runtime_error_is_reported_with_stack() -> None:
    with TestClient(app) as client:
        response = client.post("/api/execute", json={"code": "{}['missing']"})

    assert response.status_code == 500
    payload = response.json()
    assert payload["kind"] == "error"
    assert "KeyError" in payload["error"]
    assert payload["stack"]


def test_ask_requires_question() -> None:
    with TestClient(app) as client:
        response = client.post("/api/test", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "Question is required"}


def test_ask_direct_answer(monkeypatch) -> None:
    _scripted_complete_text(monkeypatch, ["ANSWER: Hello!"])

    with TestClient(app) as client:
        response = client.post("/api/test", json={"question": "Hi"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "question": "Hi", "type": "direct_answer", "answer": "Hello!"}


def test_ask_strawberry_end_to_end(monkeypatch) -> None:
    prompts = _scripted_complete_text(
        monkeypatch,
        [
            "USE_TOOL: CODE_EXECUTOR\nTASK: Count the letter 'r' in 'strawberry'",
            '```python\nlen([c for c in "strawberry" if c == "r"])\n```',
            "There are 3 r's in strawberry.",
        ],
    )

    with TestClient(app) as client:
        response = client.post("/api/test", json={"question": "How many r's in strawberry?"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["type"] == "code_execution"
    assert payload["executionResult"] == 3
    assert payload["generatedCode"] == 'len([c for c in "strawberry" if c == "r"])'
    assert "3" in payload["answer"]
    assert len(prompts) == 3


def test_ask_reports_llm_failure() -> None:
    with TestClient(app) as client:
        response = client.post("/api/test", json={"question": "Hi"})

    assert response.status_code == 500
    payload = response.json()
    assert payload["success"] is False
    assert payload["error"] == "LLM provider is off"
    assert "LLMUnavailable" in payload["stack"]


def test_llm_call_mock_shape() -> None:
    with TestClient(app) as client:
        response = client.post("/api/llm/call", json={"prompt": "Tell me a joke"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["id"].startswith("chatcmpl-")
    assert payload["model"] == "gpt-4"
    assert payload["temperature"] == 0.7
    assert payload["choices"][0]["message"]["content"] == "Mock response to: Tell me a joke..."
    assert payload["usage"] == {"prompt_tokens": 3, "completion_tokens": 50, "total_tokens": 53}


def test_llm_call_requires_prompt() -> None:
    with TestClient(app) as client:
        response = client.post("/api/llm/call", json={"model": "gpt-4"})

    assert response.status_code == 400
    assert response.json() == {"error": "Prompt is required"}


def test_missing_body_gets_the_route_message() -> None:
    with TestClient(app) as client:
        ask = client.post("/api/test")
        execute = client.post("/api/execute")
        llm = client.post("/api/llm/call")

    assert (ask.status_code, ask.json()) == (400, {"error": "Question is required"})
    assert (execute.status_code, execute.json()) == (400, {"error": "Code is required"})
    assert (llm.status_code, llm.json()) == (400, {"error": "Prompt is required"})


def test_non_string_fields_get_the_route_message() -> None:
    with TestClient(app) as client:
        ask = client.post("/api/test", json={"question": 42})
        blank = client.post("/api/test", json={"question": "   "})
        execute = client.post("/api/execute", json={"code": ["1 + 1"]})

    assert (ask.status_code, ask.json()) == (400, {"error": "Question is required"})
    assert (blank.status_code, blank.json()) == (400, {"error": "Question is required"})
    assert (execute.status_code, execute.json()) == (400, {"error": "Code is required"})


def test_other_body_errors_are_bad_requests() -> None:
    with TestClient(app) as client:
        response = client.post("/api/execute", json={"code": "1", "timeout": -5})

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid request: body.timeout")
