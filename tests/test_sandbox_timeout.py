from __future__ import annotations

import time

import pytest

from atpagent.core.capabilities.catalog import build_mock_catalog
from atpagent.core.sandbox.errors import ExecutionFault, ExecutionTimeout
from atpagent.core.sandbox.executor import Sandbox, SandboxConfig


def _sandbox(max_timeout_ms: int = 60000) -> Sandbox:
    return Sandbox(catalog=build_mock_catalog(), config=SandboxConfig(timeout_ms=5000, max_timeout_ms=max_timeout_ms))


def test_busy_loop_is_interrupted_with_timeout_fault() -> None:
    code = "n = 0\nwhile True:\n    n += 1"

    start = time.monotonic()
    with pytest.raises(ExecutionTimeout) as excinfo:
        _sandbox().run(code, timeout_ms=300)

    assert excinfo.value.kind == "timeout"
    assert time.monotonic() - start < 10
    assert "300ms" in str(excinfo.value)


def test_pending_await_is_interrupted_with_timeout_fault() -> None:
    with pytest.raises(ExecutionTimeout):
        _sandbox().run("await sleep(5)\n1", timeout_ms=200)


def test_bare_except_cannot_swallow_the_deadline() -> None:
    code = "while True:\n    try:\n        x = 1\n    except:\n        pass"

    with pytest.raises(ExecutionTimeout):
        _sandbox().run(code, timeout_ms=300)


def test_loop_inside_async_function_is_interrupted() -> None:
    code = "async def spin():\n    while True:\n        pass\n\nspin()"

    with pytest.raises(ExecutionTimeout):
        _sandbox().run(code, timeout_ms=300)


def test_timeout_is_distinguishable_from_logic_faults() -> None:
    with pytest.raises(ExecutionFault) as excinfo:
        _sandbox().run("1 / 0", timeout_ms=300)

    assert not isinstance(excinfo.value, ExecutionTimeout)
    assert excinfo.value.kind == "error"


def test_requested_budget_is_capped() -> None:
    sandbox = _sandbox(max_timeout_ms=300)

    start = time.monotonic()
    with pytest.raises(ExecutionTimeout) as excinfo:
        sandbox.run("await sleep(10)", timeout_ms=60000)

    assert excinfo.value.timeout_ms == 300
    assert time.monotonic() - start < 10


def test_loop_inside_c_builtin_is_interrupted() -> None:
    start = time.monotonic()
    with pytest.raises(ExecutionTimeout) as excinfo:
        _sandbox().run("sum(range(10**11))", timeout_ms=200)

    assert excinfo.value.timeout_ms == 200
    assert time.monotonic() - start < 10


def test_sandbox_is_usable_after_a_killed_run() -> None:
    sandbox = _sandbox()
    with pytest.raises(ExecutionTimeout):
        sandbox.run("max(range(10**12))", timeout_ms=200)

    assert sandbox.run("6 * 7") == 42
