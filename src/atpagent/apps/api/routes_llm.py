from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from atpagent.core.models.mock_completion import mock_chat_completion

from .errors import bad_request

router = APIRouter()


class LLMCallRequest(BaseModel):
    prompt: Any = None
    model: str = "gpt-4"
    temperature: float = 0.7


@router.post("/llm/call")
def llm_call(request: LLMCallRequest | None = Body(default=None)) -> JSONResponse:
    if request is None or not isinstance(request.prompt, str) or not request.prompt:
        return bad_request("Prompt is required")
    return JSONResponse(content=mock_chat_completion(request.prompt, model=request.model, temperature=request.temperature))
