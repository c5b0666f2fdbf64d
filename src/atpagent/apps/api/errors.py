from __future__ import annotations

import logging
import traceback

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from atpagent.core.sandbox.errors import ExecutionFault


def bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


def downstream_failure(exc: Exception, logger: logging.Logger) -> JSONResponse:
    logger.exception("request_failed")
    content: dict[str, object] = {"success": False, "error": str(exc)}
    if isinstance(exc, ExecutionFault):
        content["kind"] = exc.kind
        content["stack"] = exc.stack or "".join(traceback.format_exception(exc))
    else:
        content["stack"] = "".join(traceback.format_exception(exc))
    return JSONResponse(status_code=500, content=content)


async def request_validation_failure(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return bad_request("Invalid request")
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return bad_request(f"Invalid request: {location}: {first.get('msg', 'invalid value')}")
