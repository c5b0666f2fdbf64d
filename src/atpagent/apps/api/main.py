from __future__ import annotations

import os
from uuid import uuid4

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from atpagent.core.logging import configure_logging
from atpagent.core.logging.context import log_context

from .deps import get_llm, get_orchestrator, get_sandbox
from .errors import request_validation_failure
from .routes_agent import router as agent_router
from .routes_execute import router as execute_router
from .routes_llm import router as llm_router

app = FastAPI(title="ATP Agent API")
configure_logging()

app.include_router(agent_router, prefix="/api", tags=["agent"])
app.include_router(execute_router, prefix="/api", tags=["sandbox"])
app.include_router(llm_router, prefix="/api", tags=["llm"])
app.add_exception_handler(RequestValidationError, request_validation_failure)


@app.middleware("http")
async def request_context_middleware(request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid4())
    with log_context(correlation_id=correlation_id):
        response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


@app.on_event("startup")
def startup() -> None:
    app.state.llm = get_llm()
    app.state.sandbox = get_sandbox()
    app.state.orchestrator = get_orchestrator()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/healthz")
def healthz() -> dict[str, object]:
    config = get_llm().config
    return {
        "ok": True,
        "llm": {
            "provider": config.provider,
            "model": config.model,
            "configured": config.configured,
            "api_key_present": config.api_key is not None,
        },
        "sandbox": {
            "timeout_ms": get_sandbox().config.timeout_ms,
            "max_timeout_ms": get_sandbox().config.max_timeout_ms,
        },
    }


def run() -> None:
    uvicorn.run(
        "atpagent.apps.api.main:app",
        host=os.getenv("ATP_HOST", "127.0.0.1"),
        port=int(os.getenv("ATP_PORT", "3000")),
    )
