"""
Errors raised by CreeperKeeper jobs and batches.
"""

from creeperkeeper.core.constants import ErrorCode, RETRYABLE_ERRORS


def is_retryable(code: str) -> bool:
    return code in RETRYABLE_ERRORS


class JobError(Exception):
    """One failed unit of work, tagged with an ErrorCode."""

    def __init__(self, code: str, message: str, retryable: bool | None = None):
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message
        self.retryable = is_retryable(code) if retryable is None else retryable


class BatchError(JobError):
    """Aggregate failure of a best-effort bulk operation."""

    def __init__(self, operation: str, failed: int, total: int):
        super().__init__(ErrorCode.BATCH_FAILED, f"{operation}: {failed} / {total} failed")
        self.operation = operation
        self.failed = failed
        self.total = total


def check_batch(operation: str, failed: int, total: int):
    """Raise BatchError if any of `total` items failed."""
    if failed > 0:
        raise BatchError(operation, failed, total)
