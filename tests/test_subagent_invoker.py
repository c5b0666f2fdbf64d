from __future__ import annotations

import asyncio

from atpagent.core.capabilities.catalog import build_mock_catalog
from atpagent.core.sandbox.executor import Sandbox, SandboxConfig
from atpagent.core.subagent.invoker import SubAgentInvoker


class EchoLLM:
    def __init__(self) -> None:
        self.calls: list[tuple[str | None, str]] = []

    def complete_text(self, system, user, max_tokens=None, temperature=None) -> str:
        self.calls.append((system, user))
        return f"  echo: {user.splitlines()[0]}  "


def test_text_mode_wraps_trimmed_reply(scripted_llm) -> None:
    llm = scripted_llm(["  Positive overall.  \n"])

    result = asyncio.run(SubAgentInvoker(llm).call("Summarize the review"))

    assert result == {"result": "Positive overall."}
    assert llm.prompts == ["Summarize the review"]


def test_schema_mode_parses_fenced_json(scripted_llm) -> None:
    llm = scripted_llm(['```json\n{"sentiment": "positive", "score": 0.9}\n```'])
    schema = {"sentiment": "string", "score": "number"}

    result = asyncio.run(SubAgentInvoker(llm).call("Classify: great product", schema))

    assert result == {"sentiment": "positive", "score": 0.9}
    assert "Return ONLY valid JSON" in llm.prompts[0]
    assert '"sentiment": "string"' in llm.prompts[0]


def test_schema_mode_returns_parsed_value_without_validating_shape(scripted_llm) -> None:
    llm = scripted_llm(['["unexpected", "list"]'])

    result = asyncio.run(SubAgentInvoker(llm).call("x", {"name": "string"}))

    assert result == ["unexpected", "list"]


def test_schema_mode_degrades_on_prose(scripted_llm) -> None:
    llm = scripted_llm(["  I think the sentiment is positive.  "])
    schema = {"sentiment": "string"}

    result = asyncio.run(SubAgentInvoker(llm).call("Classify", schema))

    assert result == {"extracted": "I think the sentiment is positive.", "schema": schema}


def test_extract_is_the_structured_mode(scripted_llm) -> None:
    llm = scripted_llm(['{"company": "Acme"}'])

    assert asyncio.run(SubAgentInvoker(llm).extract("Who?", {"company": "string"})) == {"company": "Acme"}


def test_sandboxed_code_can_fan_out_sub_agent_calls() -> None:
    llm = EchoLLM()
    sandbox = Sandbox(catalog=build_mock_catalog(), invoker=SubAgentInvoker(llm), config=SandboxConfig(timeout_ms=5000))
    code = (
        "emails = await api.email.list(limit=3)\n"
        "replies = await gather(*(atp.llm.call(f\"Summarize {e['subject']}\") for e in emails))\n"
        "[r['result'] for r in replies]"
    )

    result = sandbox.run(code)

    assert result == ["echo: Summarize Email 1", "echo: Summarize Email 2", "echo: Summarize Email 3"]
    assert len(llm.calls) == 3
    assert all(system is None for system, _ in llm.calls)


def test_sub_agent_handle_hides_the_model_client() -> None:
    sandbox = Sandbox(catalog=build_mock_catalog(), invoker=SubAgentInvoker(EchoLLM()), config=SandboxConfig(timeout_ms=5000))

    assert sandbox.run("hasattr(atp.llm, '_llm')") is False
