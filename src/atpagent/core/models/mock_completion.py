from __future__ import annotations

import time
from typing import Any

_PREVIEW_CHARS = 100
_COMPLETION_TOKENS = 50


def mock_chat_completion(prompt: str, model: str = "gpt-4", temperature: float = 0.7) -> dict[str, Any]:
    """Chat-completion shaped echo with synthetic usage counters."""
    now_ms = int(time.time() * 1000)
    prompt_tokens = len(prompt) // 4
    return {
        "id": f"chatcmpl-{now_ms}",
        "object": "chat.completion",
        "created": now_ms // 1000,
        "model": model,
        "temperature": temperature,
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": f"Mock response to: {prompt[:_PREVIEW_CHARS]}...",
                },
                "finish_reason": "stop",
            }
        ],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": _COMPLETION_TOKENS,
            "total_tokens": prompt_tokens + _COMPLETION_TOKENS,
        },
    }
