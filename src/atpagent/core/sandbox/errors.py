from __future__ import annotations


class ExecutionFault(RuntimeError):
    """A snippet could not be run to completion.

    ``kind`` is one of ``timeout``, ``syntax``, ``forbidden`` or ``error``;
    ``stack`` holds the formatted traceback when the snippet raised.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str = "error",
        cause: BaseException | None = None,
        stack: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.cause = cause
        self.stack = stack


class ExecutionTimeout(ExecutionFault):
    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Script execution timed out after {timeout_ms}ms", kind="timeout")
        self.timeout_ms = timeout_ms
