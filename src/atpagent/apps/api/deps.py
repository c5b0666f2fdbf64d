from __future__ import annotations

from functools import lru_cache

from atpagent.core.capabilities.catalog import CapabilityCatalog, build_mock_catalog
from atpagent.core.models.llm_provider import AtpLLM
from atpagent.core.orchestration.code_agent import CodeGenerationAgent
from atpagent.core.orchestration.orchestrator import Orchestrator
from atpagent.core.sandbox.executor import Sandbox
from atpagent.core.subagent.invoker import SubAgentInvoker


@lru_cache(maxsize=1)
def get_llm() -> AtpLLM:
    return AtpLLM()


@lru_cache(maxsize=1)
def get_catalog() -> CapabilityCatalog:
    return build_mock_catalog()


@lru_cache(maxsize=1)
def get_subagent_invoker() -> SubAgentInvoker:
    return SubAgentInvoker(llm=get_llm())


@lru_cache(maxsize=1)
def get_sandbox() -> Sandbox:
    return Sandbox(catalog=get_catalog(), invoker=get_subagent_invoker())


@lru_cache(maxsize=1)
def get_code_agent() -> CodeGenerationAgent:
    return CodeGenerationAgent(llm=get_llm(), sandbox=get_sandbox())


@lru_cache(maxsize=1)
def get_orchestrator() -> Orchestrator:
    return Orchestrator(llm=get_llm(), code_agent=get_code_agent())


def reset_dependencies() -> None:
    for provider in (get_llm, get_catalog, get_subagent_invoker, get_sandbox, get_code_agent, get_orchestrator):
        provider.cache_clear()
