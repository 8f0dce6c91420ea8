"""OpenAI-compatible chat completions client for the assistant."""

from dataclasses import dataclass

from openai import AsyncOpenAI, OpenAIError

from kitchen_inventory.domain.errors import AssistantError
from kitchen_inventory.services.assistant import AssistantClient


@dataclass
class OpenAICompatibleClient(AssistantClient):
    """Assistant client for any endpoint speaking the chat completions API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str, base_url: str) -> "OpenAICompatibleClient":
        """Create a client for an OpenAI-compatible base URL."""
        return cls(client=AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0))

    async def complete(
        self, *, model: str, messages: list[dict[str, object]], max_tokens: int
    ) -> str:
        """Run a chat completion and return the first choice's text."""
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
            )
        except OpenAIError as exc:
            raise AssistantError("API请求失败") from exc
        if not response.choices or not response.choices[0].message.content:
            raise AssistantError("API返回内容为空")
        return response.choices[0].message.content.strip()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
