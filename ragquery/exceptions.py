"""
Custom exception classes for the vector query pipeline.
"""

class RetrievalException(Exception):
    """Base exception for all retrieval-related errors."""
    pass

class ToolInputError(RetrievalException):
    """Raised when a tool call does not match the tool's input contract."""
    pass

class EmbeddingError(RetrievalException):
    """Raised when embedding the query fails."""
    pass

class SimilaritySearchError(RetrievalException):
    """Raised when the vector store search fails."""
    pass

class UnsupportedFilterError(SimilaritySearchError):
    """Raised when a vector store cannot interpret the given filter."""
    pass

class RerankError(RetrievalException):
    """Raised when relevance scoring of the candidates fails."""
    pass


"""
Custom exception classes for database access.
"""
class StorageException(Exception):
    """Base exception for all storage-related errors."""
    pass

class DatabaseConnectionError(StorageException):
    """Raised when database connection fails."""
    pass


"""
Custom exception classes for LLM usage.
"""
class LLMError(Exception):
    """Base exception for LLM-related errors."""
    pass
