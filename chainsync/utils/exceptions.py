"""
Exception types.

Defines categorized exception types for indexer error handling.
"""


class IndexerError(Exception):
    """Base exception for indexer errors."""
    pass


class RpcError(IndexerError):
    """Base exception for blockchain RPC errors."""
    pass


class RpcTimeoutError(RpcError):
    """Raised when a single RPC call exceeds its timeout."""
    pass


class RpcRetryExhaustedError(RpcError):
    """
    Raised when an RPC call keeps failing after all retries.

    Callers record it as a failure of their unit of work only.
    """

    def __init__(self, operation_name: str, attempts: int, last_error: Exception | None):
        self.operation_name = operation_name
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation_name} failed after {attempts} attempts: {last_error}"
        )


class AllEndpointsFailedError(RpcError):
    """
    Raised when no RPC endpoint passes the liveness probe.

    Aborts the whole invocation.
    """
    pass
