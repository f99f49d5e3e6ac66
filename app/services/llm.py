import logging

import anthropic

from app.config import Settings
from app.errors import MissingCredential, UpstreamError

logger = logging.getLogger(__name__)


class ModelClient:
    """Thin wrapper over the Anthropic messages API shared by chat and vision."""

    def __init__(self, settings: Settings, client: anthropic.AsyncAnthropic | None = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self.settings.anthropic_api_key:
                raise MissingCredential("ANTHROPIC_API_KEY is not configured")
            self._client = anthropic.AsyncAnthropic(api_key=self.settings.anthropic_api_key)
        return self._client

    async def complete(
        self,
        *,
        model: str,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float | None = None,
        operation: str = "completion",
    ) -> str:
        kwargs = {"model": model, "max_tokens": max_tokens, "messages": messages}
        if system:
            kwargs["system"] = system
        if temperature is not None:
            kwargs["temperature"] = temperature

        client = self.client
        try:
            response = await client.messages.create(**kwargs)
        except anthropic.APIStatusError as exc:
            logger.error("%s failed on %s (%s): %s", operation, model, exc.status_code, exc.body)
            raise UpstreamError(f"Model provider error during {operation}", details=exc.body) from exc
        except anthropic.APIError as exc:
            logger.error("%s failed on %s: %s", operation, model, exc)
            raise UpstreamError(f"Model provider error during {operation}", details=str(exc)) from exc

        return "".join(block.text for block in response.content if getattr(block, "type", "text") == "text")
