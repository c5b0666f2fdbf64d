from __future__ import annotations

import logging
import re
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from atpagent.core.logging.context import log_context
from atpagent.core.models.llm_provider import AtpLLM
from atpagent.core.models.prompts import DELEGATE_MARKER, interpret_prompt, orchestrator_prompt

from .code_agent import CodeGenerationAgent
from .schemas import Delegate, DirectAnswer, OrchestratorDecision, OrchestratorResponse

_TASK_RE = re.compile(r"^[ \t]*TASK:[ \t]*(\S.*?)[ \t]*$", re.IGNORECASE | re.MULTILINE)
_ANSWER_PREFIX_RE = re.compile(r"^\s*ANSWER:\s*", re.IGNORECASE)

_DECISION_ADAPTER: TypeAdapter[OrchestratorDecision] = TypeAdapter(OrchestratorDecision)

ORCHESTRATOR_SYSTEM_PROMPT = "You route user questions. Follow the response format exactly."


def parse_decision(reply: str, question: str) -> DirectAnswer | Delegate:
    """Map a free-text classification reply onto one decision variant.

    The delegation marker selects ``Delegate``; its task is the first
    ``TASK:`` line, or the question itself when no such line exists.
    Anything else is a ``DirectAnswer``.
    """
    if DELEGATE_MARKER in reply:
        match = _TASK_RE.search(reply)
        candidate = {"kind": "delegate", "task": match.group(1) if match else question}
    else:
        candidate = {"kind": "direct_answer", "text": _ANSWER_PREFIX_RE.sub("", reply).strip()}

    try:
        return _DECISION_ADAPTER.validate_python(candidate)
    except ValidationError:
        return DirectAnswer(text=reply.strip())


class Orchestrator:
    def __init__(self, llm: AtpLLM, code_agent: CodeGenerationAgent) -> None:
        self.llm = llm
        self.code_agent = code_agent
        self.logger = logging.getLogger("atpagent.orchestrator")

    def decide(self, question: str) -> OrchestratorResponse:
        if not question or not question.strip():
            raise ValueError("question must be a non-empty string")

        with log_context(task_id=str(uuid4())):
            reply = self.llm.complete_text(system=ORCHESTRATOR_SYSTEM_PROMPT, user=orchestrator_prompt(question))
            decision = parse_decision(reply, question)
            self.logger.info("orchestrator_decision", extra={"extra_fields": {"kind": decision.kind}})

            if isinstance(decision, DirectAnswer):
                return OrchestratorResponse(kind="direct_answer", answer=decision.text)

            self.logger.info("orchestrator_delegating", extra={"extra_fields": {"task": decision.task}})
            run = self.code_agent.generate(decision.task)
            answer = self.llm.complete_text(
                system=None,
                user=interpret_prompt(question=question, task=decision.task, result=run.result),
            )
            return OrchestratorResponse(
                kind="code_execution",
                answer=answer.strip(),
                task=decision.task,
                generated_code=run.generated_code,
                execution_result=run.result,
            )

    def run(self, question: str) -> OrchestratorResponse:
        return self.decide(question)
