"""
RPC failure classification.

Maps an exception raised by a provider call to the retry strategy the
failover executor applies.
"""

from enum import Enum

import requests

from chainsync.config.constants import (
    CONNECTION_ERROR_MARKERS,
    RATE_LIMIT_CODES,
    RATE_LIMIT_MARKERS,
)
from chainsync.utils.exceptions import RpcTimeoutError


class FailureKind(str, Enum):
    """Retry strategy buckets."""

    RATE_LIMIT = "rate_limit"  # long backoff + rotate endpoint
    CONNECTION = "connection"  # rotate endpoint, short pause
    OTHER = "other"  # exponential backoff, same endpoint


CONNECTION_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    RpcTimeoutError,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


def _error_codes(error: Exception) -> set:
    """Collect status / JSON-RPC codes carried by an exception."""
    codes = set()

    code = getattr(error, "code", None)
    if code is not None:
        codes.add(code)

    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    if status is not None:
        codes.add(status)

    # web3 >= 7: Web3RPCError.rpc_response
    rpc_response = getattr(error, "rpc_response", None)
    if isinstance(rpc_response, dict):
        rpc_error = rpc_response.get("error")
        if isinstance(rpc_error, dict) and "code" in rpc_error:
            codes.add(rpc_error["code"])

    # Older providers raise ValueError({"code": ..., "message": ...})
    if error.args and isinstance(error.args[0], dict) and "code" in error.args[0]:
        codes.add(error.args[0]["code"])

    return codes


def classify_error(error: Exception) -> FailureKind:
    """
    Classify a provider failure.

    Args:
        error: Exception raised by the RPC call

    Returns:
        FailureKind bucket
    """
    message = str(error).lower()

    if _error_codes(error) & set(RATE_LIMIT_CODES):
        return FailureKind.RATE_LIMIT
    if any(marker in message for marker in RATE_LIMIT_MARKERS):
        return FailureKind.RATE_LIMIT

    if isinstance(error, CONNECTION_EXCEPTIONS):
        return FailureKind.CONNECTION
    if any(marker in message for marker in CONNECTION_ERROR_MARKERS):
        return FailureKind.CONNECTION

    return FailureKind.OTHER
