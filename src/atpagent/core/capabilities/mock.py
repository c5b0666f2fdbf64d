"""Synthetic stand-ins for the business systems exposed to generated code.

Every handler is a pure function of its arguments apart from timestamps and
the enrichment headcount; list operations number their records from 1.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any

logger = logging.getLogger("atpagent.capabilities")

_PR_COUNT = 10
_SARAH = "sarah@company.com"
_JOHN = "john@company.com"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _log_write(action: str, **fields: Any) -> None:
    logger.info("capability_write", extra={"extra_fields": {"action": action, **fields}})


class MockGitHub:
    async def list_prs(self, repo: str, state: str = "open") -> list[dict[str, Any]]:
        return [
            {
                "number": index + 1,
                "title": f"PR #{index + 1}",
                "state": state,
                "checks": "passing" if index % 2 == 0 else "failing",
            }
            for index in range(_PR_COUNT)
        ]

    async def get_diff(self, pr_number: int) -> str:
        return f"Mock diff for PR #{pr_number}"

    async def post_comment(self, pr_number: int, body: str) -> dict[str, Any]:
        _log_write("github.post_comment", pr_number=pr_number, body_len=len(body))
        return {"success": True}


class MockEmail:
    async def list(self, limit: int = 50, assignee: str | None = None) -> list[dict[str, Any]]:
        emails = [
            {
                "id": index + 1,
                "subject": f"Email {index + 1}",
                "from": f"sender{index}@example.com",
                "assignee": _SARAH if index % 3 == 0 else _JOHN,
                "content": f"Email content {index + 1}",
            }
            for index in range(limit)
        ]
        if assignee:
            return [email for email in emails if email["assignee"] == assignee]
        return emails

    async def send(self, to: str, subject: str, body: str) -> dict[str, Any]:
        _log_write("email.send", to=to, subject=subject)
        return {"success": True, "id": _now_ms()}


class MockSlack:
    async def post_message(self, channel: str, text: str) -> dict[str, Any]:
        _log_write("slack.post_message", channel=channel, text_len=len(text))
        return {"success": True, "ts": _now_ms()}


class MockCRM:
    async def get_customers(self, limit: int = 50) -> list[dict[str, Any]]:
        return [
            {
                "id": index + 1,
                "name": f"Customer {index + 1}",
                "email": f"customer{index}@example.com",
                "domain": f"company{index}.com",
            }
            for index in range(limit)
        ]

    async def batch_update(self, customers: list[dict[str, Any]]) -> dict[str, Any]:
        _log_write("crm.batch_update", count=len(customers))
        return {"success": True, "updated": len(customers)}


class MockClearbit:
    async def enrich(self, domain: str) -> dict[str, Any]:
        return {
            "companyName": f"Company for {domain}",
            "industry": "Technology",
            "employees": random.randint(0, 999),
        }
