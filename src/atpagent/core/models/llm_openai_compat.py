from __future__ import annotations

from atpagent.core.http.client import post_json


class OpenAICompatClient:
    def __init__(self, url: str, model: str, api_key: str | None = None, timeout_s: float = 45.0) -> None:
        self.url = url
        self.model = model
        self.api_key = api_key
        self.timeout_s = timeout_s

    def chat_completion(
        self,
        system: str | None,
        user: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": user})

        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else None
        data = post_json(
            self.url,
            {
                "model": self.model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            headers=headers,
            timeout_s=self.timeout_s,
        )
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        content = message.get("content")
        if isinstance(content, list):
            return "".join(str(part.get("text", "")) for part in content if isinstance(part, dict))
        return str(content or "")
