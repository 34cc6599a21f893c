"""
LLM provider abstraction layer for text generation.

Supported providers:
- Ollama (native SDK)
- OpenAI (official SDK)
"""
from kbgraph.core.llm.base import JSONCompletion, LLMProvider, LLMResponse
from kbgraph.core.llm.ollama import OllamaLLM
from kbgraph.core.llm.openai import OpenAILLM

__all__ = [
    "JSONCompletion",
    "LLMProvider",
    "LLMResponse",
    "OllamaLLM",
    "OpenAILLM",
]
