from __future__ import annotations

import logging
import re

from atpagent.core.capabilities.catalog import describe_catalog
from atpagent.core.models.llm_provider import AtpLLM
from atpagent.core.models.prompts import code_generation_prompt
from atpagent.core.sandbox.executor import Sandbox
from atpagent.core.sandbox.restrictions import ALLOWED_IMPORTS

from .schemas import GeneratedRun

_LEADING_FENCE_RE = re.compile(r"\A```(?:[A-Za-z0-9_+-]*[ \t]*\n)?")
_TRAILING_FENCE_RE = re.compile(r"\n?[ \t]*```\Z")

CODE_SYSTEM_PROMPT = "You write short, self-contained Python snippets. Output code only."


def normalize_code(text: str) -> str:
    """Strip the opening and closing markdown fences (```python, ```js, bare ```) and trim.

    Fence lines inside the body, such as in a string literal, are kept.
    """
    code = _LEADING_FENCE_RE.sub("", text.strip(), count=1)
    code = _TRAILING_FENCE_RE.sub("", code, count=1)
    return code.strip()


class CodeGenerationAgent:
    def __init__(self, llm: AtpLLM, sandbox: Sandbox) -> None:
        self.llm = llm
        self.sandbox = sandbox
        self.logger = logging.getLogger("atpagent.code_agent")

    def build_prompt(self, task: str) -> str:
        return code_generation_prompt(task, catalog=describe_catalog(), allowed_imports=sorted(ALLOWED_IMPORTS))

    def generate(self, task: str) -> GeneratedRun:
        raw = self.llm.complete_text(system=CODE_SYSTEM_PROMPT, user=self.build_prompt(task))
        generated_code = normalize_code(raw)
        self.logger.info("code_generated", extra={"extra_fields": {"code": generated_code}})

        result = self.sandbox.run(generated_code)
        self.logger.info("code_executed", extra={"extra_fields": {"result_type": type(result).__name__}})
        return GeneratedRun(generated_code=generated_code, result=result)
