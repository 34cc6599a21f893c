"""
Token counting used for chunk sizing and embedding input truncation.
"""

from kbgraph.config import TokenizerConfig
from kbgraph.core.tokenizer.tokenizer import Tokenizer, estimate_token_count

__all__ = ["Tokenizer", "TokenizerConfig", "estimate_token_count"]
