"""
Custom exception classes for the membership queue engine.
Provides structured error handling across all modules.
"""

from typing import Any, Optional, Dict, List


class MembershipQueueException(Exception):
    """Base exception class for the membership queue engine."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(MembershipQueueException):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIGURATION_ERROR", details)


class DataAccessError(MembershipQueueException):
    """Raised when the ledger is unreachable or a query fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "DATA_ACCESS_ERROR", details)


class NotFoundError(MembershipQueueException):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "NOT_FOUND", details)


class MemberNotFoundError(NotFoundError):
    """Raised when a member is not found."""

    def __init__(self, member_id: int):
        super().__init__(
            f"Member not found: {member_id}",
            {"member_id": member_id}
        )


class BatchAlreadyRunningError(MembershipQueueException):
    """Raised when a batch operation is triggered while the same one is running."""

    def __init__(self, operation: str):
        super().__init__(
            f"Batch operation already running: {operation}",
            "BATCH_ALREADY_RUNNING",
            {"operation": operation}
        )


class PartialBatchFailure(MembershipQueueException):
    """Raised when some per-member operations of a batch failed.

    The batch itself ran to completion for every unaffected member.
    """

    def __init__(
        self,
        operation: str,
        failed_member_ids: List[int],
        errors: Optional[Dict[int, str]] = None
    ):
        self.operation = operation
        self.failed_member_ids = list(failed_member_ids)
        super().__init__(
            f"{operation} failed for {len(self.failed_member_ids)} member(s)",
            "PARTIAL_BATCH_FAILURE",
            {
                "operation": operation,
                "failed_member_ids": self.failed_member_ids,
                "errors": {str(k): v for k, v in (errors or {}).items()},
            }
        )


class InconsistentStateWarning(MembershipQueueException, Warning):
    """Reported (not raised) when the persisted queue disagrees with the ranking."""

    def __init__(self, message: str, member_id: Optional[int] = None, kind: str = "unknown"):
        self.member_id = member_id
        self.kind = kind
        super().__init__(
            message,
            "INCONSISTENT_STATE",
            {"member_id": member_id, "kind": kind}
        )
