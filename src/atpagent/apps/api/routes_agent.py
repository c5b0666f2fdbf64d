from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from atpagent.core.orchestration.orchestrator import Orchestrator

from .deps import get_orchestrator
from .errors import bad_request, downstream_failure

router = APIRouter()
logger = logging.getLogger("atpagent.api.agent")


class QuestionRequest(BaseModel):
    question: Any = None


@router.post("/test")
def ask(
    request: QuestionRequest | None = Body(default=None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    question = request.question if request is not None else None
    if not isinstance(question, str) or not question.strip():
        return bad_request("Question is required")

    try:
        response = orchestrator.decide(question)
        content = jsonable_encoder({"success": True, "question": question, **response.to_payload()})
    except Exception as exc:
        return downstream_failure(exc, logger)
    return JSONResponse(content=content)
