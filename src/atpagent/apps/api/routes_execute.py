from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from atpagent.core.sandbox.executor import Sandbox

from .deps import get_sandbox
from .errors import bad_request, downstream_failure

router = APIRouter()
logger = logging.getLogger("atpagent.api.execute")

DEFAULT_TIMEOUT_MS = 5000


class ExecuteRequest(BaseModel):
    code: Any = None
    timeout: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    context: dict[str, Any] = Field(default_factory=dict)


@router.post("/execute")
def execute(
    request: ExecuteRequest | None = Body(default=None),
    sandbox: Sandbox = Depends(get_sandbox),
) -> JSONResponse:
    if request is None or not isinstance(request.code, str) or not request.code.strip():
        return bad_request("Code is required")
    invalid = [key for key in request.context if not key.isidentifier() or key.startswith("_")]
    if invalid:
        return bad_request(f"Invalid context keys: {', '.join(sorted(invalid))}")

    start = time.perf_counter()
    try:
        result = sandbox.run(request.code, timeout_ms=request.timeout, extra_bindings=request.context)
        content = jsonable_encoder(
            {
                "success": True,
                "result": result,
                "executionTime": int((time.perf_counter() - start) * 1000),
            }
        )
    except Exception as exc:
        return downstream_failure(exc, logger)
    return JSONResponse(content=content)
