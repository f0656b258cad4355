"""
Custom exception hierarchy for the application
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Error codes surfaced to callers of the RAG pipeline"""
    INVALID_QUERY = "invalid_query"
    SAFETY_CHECK_FAILED = "safety_check_failed"
    REQUEST_CANCELLED = "request_cancelled"
    RAG_ENGINE_ERROR = "rag_engine_error"


GENERIC_ERROR_MESSAGE = "Unable to generate response at this time. Please try again."


class RAGException(Exception):
    """Base exception for RAG-related errors"""
    pass


class InvalidQueryError(RAGException):
    """Query is empty or otherwise unusable"""
    pass


class SafetyViolationError(RAGException):
    """Query was blocked by the safety screen"""

    def __init__(self, message: str, level: str = "moderate", category: Optional[str] = None):
        super().__init__(message)
        self.level = level
        self.category = category


class UpstreamError(RAGException):
    """Base class for failures of external collaborators"""
    pass


class EmbeddingError(UpstreamError):
    """Error during embedding generation"""
    pass


class StorageError(UpstreamError):
    """Error during storage operations"""
    pass


class RetrievalError(UpstreamError):
    """Error during retrieval operations"""
    pass


class LLMError(UpstreamError):
    """Error during LLM operations"""
    pass


class UpstreamTimeoutError(UpstreamError):
    """Deadline elapsed while waiting on a collaborator"""
    pass


class RequestCancelledError(RAGException):
    """Caller requested cancellation of an in-flight request"""
    pass


class PipelineError(RAGException):
    """Unexpected failure inside scoring or formatting logic"""
    pass


class RagResponseError(RAGException):
    """
    Caller-facing error raised by the public RAG entry point.

    Only carries user-safe text; the underlying cause is chained for logging.
    """

    STATUS_CODES = {
        ErrorCode.INVALID_QUERY: 400,
        ErrorCode.SAFETY_CHECK_FAILED: 400,
        ErrorCode.REQUEST_CANCELLED: 499,
        ErrorCode.RAG_ENGINE_ERROR: 500,
    }

    def __init__(self, code: ErrorCode, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.stage = stage

    @property
    def status_code(self) -> int:
        return self.STATUS_CODES[self.code]

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message}
