"""Request-scoped ids attached to every log record.

A request binds ``correlation_id``, the orchestrator binds ``task_id`` and
each sandbox run binds ``execution_id``. Values propagate to worker threads
through ``contextvars.copy_context``.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator

CONTEXT_KEYS = ("correlation_id", "task_id", "execution_id")

_VARS: dict[str, ContextVar[str | None]] = {key: ContextVar(key, default=None) for key in CONTEXT_KEYS}

ContextTokens = dict[str, Token[str | None]]


def set_context(**ids: str | None) -> ContextTokens:
    unknown = set(ids) - set(CONTEXT_KEYS)
    if unknown:
        raise KeyError(f"unknown log context keys: {sorted(unknown)}")
    return {key: _VARS[key].set(value) for key, value in ids.items() if value is not None}


def reset_context(tokens: ContextTokens) -> None:
    for key in reversed(list(tokens)):
        _VARS[key].reset(tokens[key])


@contextmanager
def log_context(
    correlation_id: str | None = None,
    task_id: str | None = None,
    execution_id: str | None = None,
) -> Iterator[None]:
    # None keeps the enclosing binding, so nested runs inherit the outer task id.
    tokens = set_context(correlation_id=correlation_id, task_id=task_id, execution_id=execution_id)
    try:
        yield
    finally:
        reset_context(tokens)


def get_log_context() -> dict[str, str]:
    bound: dict[str, str] = {}
    for key in CONTEXT_KEYS:
        value = _VARS[key].get()
        if value is not None:
            bound[key] = value
    return bound
