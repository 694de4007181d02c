"""OpenAI Responses API client for spell checking."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from inspection_collab.services.spell_check import SpellCheckClient


@dataclass
class OpenAISpellCheckClient(SpellCheckClient):
    """Spell-check client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAISpellCheckClient":
        """Create an OpenAI spell-check client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def complete(self, *, model: str, instructions: str, prompt: str) -> str:
        """Send the prompt and return the answer text."""
        response = await self.client.responses.create(
            model=model,
            instructions=instructions,
            input=prompt,
            store=False,
        )
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return output_text

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
