"""
Abstract base class for LLM providers.
Handles text generation with optional JSON-mode structured outputs.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from kbgraph.utils.json_repair import parse_json_response


class LLMResponse(BaseModel):
    """Raw completion text plus usage."""

    content: str
    tokens_used: int = 0
    model: str
    provider: str


class JSONCompletion(BaseModel):
    """A completion parsed into a JSON value."""

    data: Any
    tokens_used: int = 0
    model: str
    provider: str


class LLMProvider(ABC):
    """
    Abstract base for LLM text generation providers.

    Responsibilities:
    - Text completion/generation under a deadline
    - JSON-mode completions parsed (and repaired when truncated)
    """

    model: str
    timeout: float = 120.0

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        json_mode: bool = False,
        max_tokens: int = 2000,
        temperature: float = 0.0,
        **kwargs,
    ) -> LLMResponse:
        """
        Generate completion from prompt.

        Args:
            prompt: The input prompt
            system_prompt: Optional system instructions
            json_mode: Ask the provider for a JSON object response
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature (0.0 = deterministic, 1.0 = creative)
            **kwargs: Provider-specific parameters

        Returns:
            LLMResponse with content and token usage

        Raises:
            ValidationError: If the prompt is empty
            LLMError: Provider errors and timeouts
        """
        pass

    async def complete_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
        max_tokens: int = 8192,
        temperature: float = 0.0,
        **kwargs,
    ) -> JSONCompletion:
        """
        JSON-mode completion parsed into Python data.

        Raises:
            JSONParseError: If the content is not JSON even after repair
        """
        response = await self.complete(
            prompt,
            system_prompt=system_prompt,
            json_mode=True,
            max_tokens=max_tokens,
            temperature=temperature,
            **kwargs,
        )

        return JSONCompletion(
            data=parse_json_response(response.content),
            tokens_used=response.tokens_used,
            model=response.model,
            provider=response.provider,
        )

    @abstractmethod
    async def close(self):
        """
        Close any open connections.
        Optional to override if provider needs cleanup.
        """
