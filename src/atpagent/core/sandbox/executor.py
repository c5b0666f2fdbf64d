"""Run generated snippets in a child process under a wall-clock deadline.

Each run spawns a fresh interpreter (``worker.serve``) and waits on a pipe.
Capability and sub-agent calls made by the snippet arrive as messages and are
answered from this process on short-lived threads, so the snippet never holds
a reference to a host object. When the budget runs out the child is killed,
whatever it is doing.
"""

from __future__ import annotations

import asyncio
import contextvars
import logging
import multiprocessing
import os
import pickle
import threading
import time
from dataclasses import dataclass
from multiprocessing.connection import Connection
from typing import Any
from uuid import uuid4

from atpagent.core.capabilities.catalog import CapabilityCatalog
from atpagent.core.logging.context import log_context

from .errors import ExecutionFault, ExecutionTimeout
from .restrictions import compile_snippet
from .worker import SUBAGENT_PATHS, serve

logger = logging.getLogger("atpagent.sandbox")

_SPAWN = multiprocessing.get_context("spawn")
_MAX_LOG_CHARS = 2000


@dataclass(frozen=True)
class SandboxConfig:
    timeout_ms: int = 15000
    max_timeout_ms: int = 60000
    startup_timeout_s: float = 20.0

    @classmethod
    def from_env(cls) -> "SandboxConfig":
        return cls(
            timeout_ms=int(os.getenv("ATP_SANDBOX_TIMEOUT_MS", "15000")),
            max_timeout_ms=int(os.getenv("ATP_SANDBOX_MAX_TIMEOUT_MS", "60000")),
            startup_timeout_s=float(os.getenv("ATP_SANDBOX_STARTUP_TIMEOUT_S", "20")),
        )


def _portable(exc: Exception) -> Exception:
    try:
        pickle.loads(pickle.dumps(exc))
    except Exception:
        return RuntimeError(f"{exc.__class__.__name__}: {exc}")
    return exc


class Sandbox:
    def __init__(
        self,
        catalog: CapabilityCatalog,
        invoker: Any | None = None,
        config: SandboxConfig | None = None,
    ) -> None:
        self.catalog = catalog
        self.invoker = invoker
        self.config = config or SandboxConfig.from_env()

    def run(self, code: str, timeout_ms: int | None = None, extra_bindings: dict[str, Any] | None = None) -> Any:
        budget_ms = self._budget(timeout_ms)
        bindings = self._check_bindings(extra_bindings)
        # Syntax and forbidden constructs are reported before a worker is spawned.
        compile_snippet(code)

        execution_id = uuid4().hex[:12]
        start = time.perf_counter()
        with log_context(execution_id=execution_id):
            logger.info("sandbox_started", extra={"extra_fields": {"timeout_ms": budget_ms, "code_len": len(code)}})
            try:
                result = self._supervise(code, budget_ms, bindings, execution_id)
            except ExecutionFault as exc:
                self._log_finished(start, kind=exc.kind)
                raise
            self._log_finished(start, kind=None)
            return result

    def resolve(self, path: str):
        """Map a forwarded call path (``api.github.list_prs``, ``atp.llm.call``) to its handler."""
        root, _, rest = path.partition(".")
        if root == "api":
            return self.catalog.resolve(rest)
        if root == "atp" and self.invoker is not None and rest in SUBAGENT_PATHS:
            return getattr(self.invoker, rest.partition(".")[2])
        raise KeyError(f"capability not found: {path}")

    def _check_bindings(self, extra_bindings: dict[str, Any] | None) -> dict[str, Any]:
        bindings = dict(extra_bindings or {})
        for key in bindings:
            if not str(key).isidentifier() or str(key).startswith("_"):
                raise ValueError(f"invalid binding name: {key!r}")
        return bindings

    def _budget(self, timeout_ms: int | None) -> int:
        requested = self.config.timeout_ms if timeout_ms is None else int(timeout_ms)
        return max(1, min(requested, self.config.max_timeout_ms))

    def _supervise(self, code: str, budget_ms: int, bindings: dict[str, Any], execution_id: str) -> Any:
        parent_conn, child_conn = _SPAWN.Pipe()
        process = _SPAWN.Process(
            target=serve,
            args=(child_conn, code, self.catalog.paths(), self.invoker is not None, bindings),
            name=f"sandbox-{execution_id}",
            daemon=True,
        )
        process.start()
        child_conn.close()
        send_lock = threading.Lock()
        started = False
        deadline = time.monotonic() + self.config.startup_timeout_s
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0 or not parent_conn.poll(remaining):
                    if not started:
                        raise ExecutionFault("Sandbox worker did not start in time", kind="error")
                    logger.warning("sandbox_worker_killed", extra={"extra_fields": {"pid": process.pid}})
                    raise ExecutionTimeout(budget_ms)

                message = self._receive(parent_conn, process)
                tag = message[0]
                if tag == "ready":
                    started = True
                    deadline = time.monotonic() + budget_ms / 1000
                elif tag == "log":
                    logger.info("sandbox_log", extra={"extra_fields": {"output": str(message[1])[:_MAX_LOG_CHARS]}})
                elif tag == "call":
                    _, call_id, path, args, kwargs = message
                    worker = threading.Thread(
                        target=contextvars.copy_context().run,
                        args=(self._answer, parent_conn, send_lock, call_id, path, args, kwargs),
                        name=f"sandbox-call-{execution_id}-{call_id}",
                        daemon=True,
                    )
                    worker.start()
                elif tag == "result":
                    return message[1]
                elif tag == "fault":
                    _, kind, text, stack, cause = message
                    raise ExecutionFault(text, kind=kind, cause=cause, stack=stack)
        finally:
            if process.is_alive():
                process.kill()
            process.join()
            parent_conn.close()

    def _receive(self, conn: Connection, process) -> tuple:
        try:
            return conn.recv()
        except EOFError:
            process.join(timeout=1.0)
            raise ExecutionFault(f"Sandbox worker exited unexpectedly (exit code {process.exitcode})") from None
        except (pickle.UnpicklingError, AttributeError, ImportError, TypeError) as exc:
            raise ExecutionFault(f"Could not decode sandbox message: {exc}", cause=exc) from exc

    def _answer(
        self,
        conn: Connection,
        send_lock: threading.Lock,
        call_id: int,
        path: str,
        args: tuple,
        kwargs: dict[str, Any],
    ) -> None:
        try:
            value = asyncio.run(self.resolve(path)(*args, **kwargs))
        except Exception as exc:
            reply = ("reply", call_id, False, _portable(exc))
        else:
            reply = ("reply", call_id, True, value)

        try:
            with send_lock:
                conn.send(reply)
        except (OSError, ValueError):
            # The run already ended and the pipe is closed.
            logger.info("sandbox_reply_dropped", extra={"extra_fields": {"path": path}})

    def _log_finished(self, start: float, kind: str | None) -> None:
        logger.info(
            "sandbox_finished",
            extra={
                "extra_fields": {
                    "duration_ms": int((time.perf_counter() - start) * 1000),
                    "ok": kind is None,
                    "fault_kind": kind,
                }
            },
        )
