from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class DirectAnswer(BaseModel):
    kind: Literal["direct_answer"] = "direct_answer"
    text: str


class Delegate(BaseModel):
    kind: Literal["delegate"] = "delegate"
    task: str


OrchestratorDecision = Annotated[Union[DirectAnswer, Delegate], Field(discriminator="kind")]


class OrchestratorResponse(BaseModel):
    kind: Literal["direct_answer", "code_execution"]
    answer: str
    task: str | None = None
    generated_code: str | None = None
    execution_result: Any = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.kind, "answer": self.answer}
        if self.kind == "code_execution":
            payload["task"] = self.task
            payload["generatedCode"] = self.generated_code
            payload["executionResult"] = self.execution_result
        return payload


@dataclass
class GeneratedRun:
    generated_code: str
    result: Any
