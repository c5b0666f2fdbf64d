from __future__ import annotations


class AtpHTTPError(RuntimeError):
    """Base error for outbound HTTP calls."""


class AtpHTTPStatusError(AtpHTTPError):
    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AtpHTTPNetworkError(AtpHTTPError):
    """Raised on transport failures (connect, timeout, protocol)."""
