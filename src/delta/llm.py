"""Text generation through the OpenAI chat completions API."""

from typing import Optional

from openai import AsyncOpenAI

from delta.analysis.prompt import SYSTEM_PROMPT
from delta.errors import GenerationError
from delta.logger import get_logger

logger = get_logger(__name__)


class TextGenerator:
    """Single-shot prompt → Markdown generation.

    No retries and no streaming; the caller decides what to do on failure.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        max_tokens: int = 4000,
        temperature: float = 0.8,
        timeout: float = 60.0,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self.system_prompt = system_prompt
        self._client: Optional[AsyncOpenAI] = None

    def _client_instance(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise GenerationError("OPENAI_API_KEY is not configured")
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    async def generate(self, prompt: str) -> str:
        """Send ``prompt`` and return the generated text.

        Raises:
            GenerationError: no API key, or the response had no content.
            openai.OpenAIError: transport, auth or quota failures.
        """
        client = self._client_instance()
        response = await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": prompt},
            ],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise GenerationError("No content generated")
        logger.debug("Generated %d characters with %s", len(content), self.model)
        return content

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
