from __future__ import annotations

from typing import Any, Protocol


class GitHubCapability(Protocol):
    async def list_prs(self, repo: str, state: str = "open") -> list[dict[str, Any]]: ...

    async def get_diff(self, pr_number: int) -> str: ...

    async def post_comment(self, pr_number: int, body: str) -> dict[str, Any]: ...


class EmailCapability(Protocol):
    async def list(self, limit: int = 50, assignee: str | None = None) -> list[dict[str, Any]]: ...

    async def send(self, to: str, subject: str, body: str) -> dict[str, Any]: ...


class SlackCapability(Protocol):
    async def post_message(self, channel: str, text: str) -> dict[str, Any]: ...


class CRMCapability(Protocol):
    async def get_customers(self, limit: int = 50) -> list[dict[str, Any]]: ...

    async def batch_update(self, customers: list[dict[str, Any]]) -> dict[str, Any]: ...


class EnrichmentCapability(Protocol):
    async def enrich(self, domain: str) -> dict[str, Any]: ...
