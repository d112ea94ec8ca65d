"""
Custom exceptions for the analytics engine.

Repositories raise ``RecordStoreError`` when a read against the record store
fails. Most accessors catch it and fall back to a renderable default; the
composite score calculator instead re-raises it as ``ScoreComputationError``
so callers never mistake a failure for a score.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Error codes for consistent error reporting."""

    RECORD_STORE_ERROR = "RECORD_STORE_ERROR"
    SCORE_COMPUTATION_FAILED = "SCORE_COMPUTATION_FAILED"


class FitnessEngineError(Exception):
    """
    Base exception for all engine errors.

    Attributes:
        message: Human-readable error message
        code: Error code from ErrorCode enum
        details: Optional dictionary with additional error details
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RECORD_STORE_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"error": self.code.value, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result


class RecordStoreError(FitnessEngineError):
    """A read query against the record store failed."""

    def __init__(self, message: str, query: Optional[str] = None) -> None:
        details = {"query": query} if query else None
        super().__init__(message, ErrorCode.RECORD_STORE_ERROR, details)


class ScoreComputationError(FitnessEngineError):
    """Rolling scores could not be computed for a user."""

    def __init__(self, user_id: str, reason: str) -> None:
        super().__init__(
            f"Could not compute scores for user {user_id}: {reason}",
            ErrorCode.SCORE_COMPUTATION_FAILED,
            {"user_id": user_id},
        )
        self.user_id = user_id
