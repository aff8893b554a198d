import os

from openai import OpenAI

from core.config import LLMConfig


class LLMClient:
    """Synchronous chat client; one attempt per call, failures surface to the caller."""

    def __init__(self, config: LLMConfig):
        self.config = config
        if config.backend == "api":
            api_key = os.environ.get(config.api.api_key_env, "")
            base_url = config.api.base_url
            self.model = config.api.model
        else:
            api_key = "not-needed"
            base_url = config.local.base_url
            self.model = config.local.model
        self.client = OpenAI(
            base_url=base_url,
            api_key=api_key,
            timeout=config.timeout,
            max_retries=0,
        )

    def chat_simple(self, messages: list[dict]) -> str:
        """Plain chat completion, returns just the text content."""
        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=self.config.max_tokens,
            temperature=0.7,
        )
        return response.choices[0].message.content or ""

    def health(self) -> dict:
        """Check if LLM endpoint is reachable."""
        try:
            self.client.models.list()
            return {"status": "ok", "model": self.model, "backend": self.config.backend}
        except Exception as e:
            return {"status": "error", "error": str(e)}
