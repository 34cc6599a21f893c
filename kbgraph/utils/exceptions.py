"""
Custom exception hierarchy for kbgraph.

Provides structured error types for better error handling and debugging.
All exceptions inherit from KBGraphError for easy catching.
"""


class KBGraphError(Exception):
    """
    Base exception for all kbgraph errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize kbgraph error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class StoreError(KBGraphError):
    """
    Base exception for store operations.
    Used for errors raised by the knowledge store backends.
    """

    pass


class VectorStoreError(StoreError):
    """
    Vector index operation errors.
    Raised when vector database operations fail.
    """

    pass


class ValidationError(KBGraphError):
    """
    Validation errors.
    Raised when input validation fails or a caller breaks an operation contract
    (e.g. comparing vectors of different dimensions).
    """

    pass


class NotFoundError(KBGraphError):
    """
    Resource not found errors.
    Raised when a requested knowledge item doesn't exist.
    """

    pass


class ConfigurationError(KBGraphError):
    """
    Configuration errors.
    Raised when configuration is invalid or missing required values.
    """

    pass


class EmbeddingError(KBGraphError):
    """
    Embedding generation errors.
    Raised when embedding generation fails.
    """

    pass


class LLMError(KBGraphError):
    """
    LLM operation errors.
    Raised when LLM operations fail (API errors, timeouts, etc.).
    """

    pass


class JSONParseError(LLMError):
    """
    Raised when an LLM response cannot be parsed as JSON, even after repair.
    """

    def __init__(self, message: str, preview: str = "", context: dict | None = None):
        super().__init__(message, context)
        self.preview = preview


class GraphError(KBGraphError):
    """
    Graph operation errors.
    Raised on misuse of graph operations, such as merging an empty list of graphs.
    """

    pass
