"""
Token counting for chunk sizing and embedding truncation.

Uses a character-ratio estimate by default (about four characters per
token for English text) and tiktoken when exact counts are configured.
"""

import math

import tiktoken

from kbgraph.config import TokenizerConfig


class Tokenizer:
    """
    Token counter with a fast estimate and an optional exact mode.

    Usage:
        tokenizer = Tokenizer()
        approx = tokenizer.estimate_tokens("Hello world")
        exact = Tokenizer(TokenizerConfig(provider="tiktoken")).count_tokens("Hello world")
    """

    def __init__(self, config: TokenizerConfig | None = None):
        """
        Initialize tokenizer with configuration.

        Args:
            config: Optional tokenizer configuration. Uses defaults if not provided.
        """
        self.config = config or TokenizerConfig()
        self._encoder: tiktoken.Encoding | None = None

    @property
    def encoder(self) -> tiktoken.Encoding:
        """Lazy-load tiktoken encoder."""
        if self._encoder is None:
            self._encoder = tiktoken.get_encoding(self.config.model)
        return self._encoder

    def count_tokens(self, text: str) -> int:
        """
        Count tokens using the configured provider.

        Args:
            text: Text to count tokens for

        Returns:
            Token count (estimated unless provider is "tiktoken")
        """
        if not text:
            return 0

        if self.config.provider == "tiktoken":
            return len(self.encoder.encode(text))

        return self.estimate_tokens(text)

    def estimate_tokens(self, text: str) -> int:
        """
        Approximate token count: ceil(len(text) / chars_per_token).

        Args:
            text: Text to estimate tokens for

        Returns:
            Approximate token count
        """
        if not text:
            return 0
        return math.ceil(len(text) / self.config.chars_per_token)

    def max_characters(self, max_tokens: int) -> int:
        """Character budget that corresponds to a token budget."""
        return int(max_tokens * self.config.chars_per_token)

    def truncate(self, text: str, max_tokens: int) -> str:
        """
        Truncate text so its token count does not exceed max_tokens.

        Exact mode cuts on token boundaries; estimate mode cuts on the
        character budget.
        """
        if self.count_tokens(text) <= max_tokens:
            return text

        if self.config.provider == "tiktoken":
            return self.encoder.decode(self.encoder.encode(text)[:max_tokens])

        return text[: self.max_characters(max_tokens)]


def estimate_token_count(text: str) -> int:
    """Approximate token count at four characters per token."""
    return math.ceil(len(text) / 4) if text else 0
