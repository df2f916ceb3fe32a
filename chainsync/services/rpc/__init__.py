"""
RPC module.

Endpoint pool, classified retry/failover and the launchpad chain client.
"""

from .chain_client import (
    BlockInfo,
    ChainClient,
    LaunchEvent,
    SwapEvent,
    build_chain_client,
)
from .endpoint_pool import EndpointPool
from .error_classifier import FailureKind, classify_error
from .failover_executor import FailoverExecutor


__all__ = [
    "BlockInfo",
    "ChainClient",
    "EndpointPool",
    "FailoverExecutor",
    "FailureKind",
    "LaunchEvent",
    "SwapEvent",
    "build_chain_client",
    "classify_error",
]
