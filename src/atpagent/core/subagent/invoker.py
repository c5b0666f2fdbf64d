from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any

from atpagent.core.models.llm_provider import AtpLLM
from atpagent.core.models.prompts import structured_output_instruction

_JSON_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*\s*|\s*```$")
_UNPARSED = object()


def strip_json_fences(text: str) -> str:
    return _JSON_FENCE_RE.sub("", text.strip()).strip()


class SubAgentInvoker:
    """The ``atp.llm`` handle available to sandboxed code.

    Calls are coroutines that push the blocking completion onto a worker
    thread, so ``gather`` can fan out any number of them at once. The schema
    is only a prompt hint: parsed JSON is returned whatever its shape.
    """

    def __init__(self, llm: AtpLLM) -> None:
        self._llm = llm
        self._logger = logging.getLogger("atpagent.subagent")

    async def call(self, prompt: str, schema: dict[str, Any] | None = None) -> Any:
        if schema:
            return await self.extract(prompt, schema)

        self._logger.info("subagent_call", extra={"extra_fields": {"mode": "text", "prompt_len": len(prompt)}})
        text = await asyncio.to_thread(self._llm.complete_text, None, prompt)
        return {"result": text.strip()}

    async def extract(self, prompt: str, schema: dict[str, Any]) -> Any:
        self._logger.info(
            "subagent_call",
            extra={"extra_fields": {"mode": "structured", "prompt_len": len(prompt), "fields": sorted(map(str, schema))}},
        )
        raw = await asyncio.to_thread(
            self._llm.complete_text,
            None,
            f"{prompt}\n\n{structured_output_instruction(schema)}",
        )
        parsed = self._parse(raw)
        if parsed is _UNPARSED:
            self._logger.warning("subagent_unparsed_json", extra={"extra_fields": {"raw_len": len(raw)}})
            return {"extracted": raw.strip(), "schema": schema}
        return parsed

    def _parse(self, raw: str) -> Any:
        try:
            return json.loads(strip_json_fences(raw))
        except json.JSONDecodeError:
            return _UNPARSED
