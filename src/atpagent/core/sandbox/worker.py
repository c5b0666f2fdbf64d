"""Child-process side of a sandbox run.

``serve`` runs in a freshly spawned interpreter. The snippet only sees
stand-ins for ``api`` and ``atp``: every call on them is forwarded over the
pipe and answered by the parent, which owns the real catalog and model
client. The parent kills this process when the deadline passes.

Messages sent to the parent::

    ("ready",)
    ("log", text)
    ("call", call_id, path, args, kwargs)
    ("result", value)
    ("fault", kind, message, stack, cause)

and received from it: ``("reply", call_id, ok, value_or_exception)``.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import pickle
import threading
import traceback
import types
from multiprocessing.connection import Connection
from typing import Any

from .errors import ExecutionFault
from .restrictions import RESULT_NAME, build_builtins, compile_snippet

SUBAGENT_PATHS = ("llm.call", "llm.extract")


class _ParentLink:
    def __init__(self, conn: Connection) -> None:
        self._conn = conn
        self._send_lock = threading.Lock()
        self._pending: dict[int, tuple[asyncio.AbstractEventLoop, asyncio.Future]] = {}
        self._ids = itertools.count(1)

    def send(self, message: tuple) -> None:
        with self._send_lock:
            self._conn.send(message)

    async def request(self, path: str, args: tuple, kwargs: dict[str, Any]) -> Any:
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        call_id = next(self._ids)
        self._pending[call_id] = (loop, future)
        try:
            self.send(("call", call_id, path, args, kwargs))
        except Exception:
            self._pending.pop(call_id, None)
            raise
        return await future

    def listen(self) -> None:
        while True:
            try:
                _, call_id, ok, value = self._conn.recv()
            except (EOFError, OSError):
                return
            entry = self._pending.pop(call_id, None)
            if entry is not None:
                loop, future = entry
                loop.call_soon_threadsafe(_settle, future, ok, value)


def _settle(future: asyncio.Future, ok: bool, value: Any) -> None:
    if future.done():
        return
    if ok:
        future.set_result(value)
    else:
        future.set_exception(value)


def _remote(link: _ParentLink, path: str):
    async def remote_call(*args, **kwargs):
        return await link.request(path, args, kwargs)

    remote_call.__name__ = path.rsplit(".", 1)[-1]
    return remote_call


def _remote_namespace(link: _ParentLink, root: str, paths: list[str] | tuple[str, ...]) -> types.SimpleNamespace:
    groups: dict[str, dict[str, Any]] = {}
    for path in paths:
        group, _, operation = path.partition(".")
        groups.setdefault(group, {})[operation] = _remote(link, f"{root}.{path}")
    return types.SimpleNamespace(**{name: types.SimpleNamespace(**ops) for name, ops in groups.items()})


def _printer(link: _ParentLink):
    def sandbox_print(*args: Any, sep: str = " ", **_: Any) -> None:
        link.send(("log", sep.join(str(arg) for arg in args)))

    return sandbox_print


async def _gather(*awaitables: Any, return_exceptions: bool = False) -> list[Any]:
    return await asyncio.gather(*awaitables, return_exceptions=return_exceptions)


async def _evaluate(code: types.CodeType, namespace: dict[str, Any]) -> Any:
    outcome = eval(code, namespace)
    if inspect.iscoroutine(outcome):
        await outcome
    result = namespace.get(RESULT_NAME)
    if inspect.isawaitable(result):
        result = await result
    return result


def _send_fault(link: _ParentLink, kind: str, message: str, stack: str | None, cause: BaseException | None) -> None:
    try:
        link.send(("fault", kind, message, stack, cause))
    except (pickle.PicklingError, TypeError, AttributeError):
        link.send(("fault", kind, message, stack, None))


def serve(
    conn: Connection,
    code: str,
    api_paths: list[str],
    with_subagent: bool,
    extra_bindings: dict[str, Any],
) -> None:
    link = _ParentLink(conn)
    threading.Thread(target=link.listen, name="sandbox-link", daemon=True).start()
    link.send(("ready",))

    try:
        compiled = compile_snippet(code)
        namespace: dict[str, Any] = {"__builtins__": build_builtins(), "__name__": "__sandbox__"}
        namespace.update(
            api=_remote_namespace(link, "api", api_paths),
            print=_printer(link),
            log=_printer(link),
            gather=_gather,
            sleep=asyncio.sleep,
        )
        if with_subagent:
            namespace["atp"] = _remote_namespace(link, "atp", SUBAGENT_PATHS)
        namespace.update(extra_bindings)
        result = asyncio.run(_evaluate(compiled, namespace))
    except ExecutionFault as exc:
        _send_fault(link, exc.kind, str(exc), exc.stack, exc.cause)
        return
    except Exception as exc:
        _send_fault(link, "error", f"{exc.__class__.__name__}: {exc}", traceback.format_exc(), exc)
        return

    try:
        link.send(("result", result))
    except (pickle.PicklingError, TypeError, AttributeError) as exc:
        _send_fault(link, "error", f"Result is not serializable: {exc}", None, None)
