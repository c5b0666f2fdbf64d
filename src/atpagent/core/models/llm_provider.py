from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass

from atpagent.core.http.errors import AtpHTTPError

from .llm_openai_compat import OpenAICompatClient

_DEFAULT_URL = "https://generativelanguage.googleapis.com/v1beta/openai/chat/completions"
_DEFAULT_MODEL = "gemini-2.5-flash"


class LLMUnavailable(RuntimeError):
    """The completion provider is switched off or the call failed."""


@dataclass(frozen=True)
class LLMConfig:
    provider: str
    url: str
    model: str
    api_key: str | None
    timeout_s: float
    temperature: float
    max_tokens: int

    @classmethod
    def from_env(cls) -> "LLMConfig":
        return cls(
            provider=os.getenv("ATP_LLM_PROVIDER", "http").strip().casefold(),
            url=os.getenv("ATP_LLM_URL", _DEFAULT_URL),
            model=os.getenv("ATP_LLM_MODEL", _DEFAULT_MODEL),
            api_key=os.getenv("ATP_LLM_API_KEY") or os.getenv("GOOGLE_API_KEY") or None,
            timeout_s=float(os.getenv("ATP_LLM_TIMEOUT_S", "45")),
            temperature=float(os.getenv("ATP_LLM_TEMPERATURE", "0.2")),
            max_tokens=int(os.getenv("ATP_LLM_MAX_TOKENS", "2048")),
        )

    @property
    def configured(self) -> bool:
        return self.provider == "http" and bool(self.url)


class AtpLLM:
    """Text-completion oracle shared by every agent in the process.

    Built once from the environment and passed explicitly to the components
    that need it. Each call is a single attempt; failures surface as
    ``LLMUnavailable``.
    """

    def __init__(self, config: LLMConfig | None = None) -> None:
        self.config = config or LLMConfig.from_env()
        self._compat = OpenAICompatClient(
            url=self.config.url,
            model=self.config.model,
            api_key=self.config.api_key,
            timeout_s=self.config.timeout_s,
        )
        self.logger = logging.getLogger("atpagent.llm")

    def complete_text(
        self,
        system: str | None,
        user: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        if self.config.provider == "off":
            raise LLMUnavailable("LLM provider is off")
        if self.config.provider != "http":
            raise LLMUnavailable(f"Unsupported LLM provider: {self.config.provider}")

        used_tokens = max_tokens or self.config.max_tokens
        used_temp = self.config.temperature if temperature is None else temperature
        start = time.perf_counter()
        try:
            output = self._compat.chat_completion(
                system=system,
                user=user,
                temperature=used_temp,
                max_tokens=used_tokens,
            )
        except AtpHTTPError as exc:
            self._log_call(start, ok=False, system=system, user=user)
            raise LLMUnavailable(f"LLM request failed: {exc}") from exc

        self._log_call(start, ok=True, system=system, user=user)
        return output

    def _log_call(self, start: float, ok: bool, system: str | None, user: str) -> None:
        self.logger.info(
            "llm_call",
            extra={
                "extra_fields": {
                    "provider": self.config.provider,
                    "model": self.config.model,
                    "duration_ms": int((time.perf_counter() - start) * 1000),
                    "ok": ok,
                    "system_len": len(system or ""),
                    "user_len": len(user),
                }
            },
        )
