"""
OpenAI LLM provider using official SDK.
"""

import asyncio

from openai import AsyncOpenAI

from kbgraph.core.llm.base import LLMProvider, LLMResponse
from kbgraph.utils.exceptions import LLMError, ValidationError
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)


class OpenAILLM(LLMProvider):
    """
    OpenAI LLM provider for text generation.

    JSON mode maps to the chat API's json_object response format.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        organization: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
    ):
        """
        Initialize OpenAI LLM provider.

        Args:
            api_key: OpenAI API key
            model: Model name (e.g., "gpt-4o", "gpt-4o-mini")
            organization: Optional organization ID
            base_url: Optional custom base URL
            timeout: Request deadline in seconds
        """
        self.model = model
        self.timeout = timeout

        self.client = AsyncOpenAI(
            api_key=api_key, organization=organization, base_url=base_url, timeout=timeout
        )

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        json_mode: bool = False,
        max_tokens: int = 2000,
        temperature: float = 0.0,
        **kwargs,
    ) -> LLMResponse:
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt cannot be empty")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        params = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            **kwargs,
        }
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(**params), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise LLMError(
                f"OpenAI completion timed out after {self.timeout}s",
                context={"model": self.model},
            ) from e
        except Exception as e:
            logger.error(
                "OpenAI API error",
                extra={"model": self.model, "error": str(e), "error_type": type(e).__name__},
            )
            raise LLMError(f"OpenAI API error: {e}") from e

        content = response.choices[0].message.content
        if not content:
            raise LLMError("OpenAI returned empty content", context={"model": self.model})

        usage = getattr(response, "usage", None)
        return LLMResponse(
            content=content,
            tokens_used=usage.total_tokens if usage else 0,
            model=self.model,
            provider="openai",
        )

    async def close(self):
        """Close OpenAI client."""
        await self.client.close()
