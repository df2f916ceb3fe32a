"""
Application constants.

Centralized constants for the indexer.
"""

# ========================================================================
# NETWORK
# ========================================================================

# Public Sepolia endpoints, in failover order
DEFAULT_RPC_URLS = (
    "https://ethereum-sepolia-rpc.publicnode.com",
    "https://rpc.sepolia.org",
    "https://ethereum-sepolia.blockpi.network/v1/rpc/public",
    "https://rpc2.sepolia.org",
)

LAUNCHPAD_FACTORY_ADDRESS = "0xDE377c1C3280C2De18479Acbe40a06a79E0B3831"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# ========================================================================
# RPC RETRY / FAILOVER
# ========================================================================

RPC_MAX_RETRIES = 3  # Attempts per RPC call before surfacing the error
RPC_RETRY_BASE_DELAY = 1.0  # Base delay in seconds for backoff
RPC_RATE_LIMIT_MAX_DELAY = 60.0  # Cap for rate-limit backoff (base * 3^n)
RPC_CONNECTION_RETRY_DELAY = 0.5  # Pause after rotating on connection errors
RPC_CALL_TIMEOUT = 20.0  # Timeout for a single run_in_executor call
RPC_EXECUTOR_WORKERS = 8  # Thread pool size for sync Web3 calls

# JSON-RPC / HTTP codes signalling rate limiting
RATE_LIMIT_CODES = (429, -32005)
RATE_LIMIT_MARKERS = ("429", "rate limit", "too many requests")
CONNECTION_ERROR_MARKERS = (
    "timeout",
    "timed out",
    "etimedout",
    "econnreset",
    "econnrefused",
    "connection reset",
    "connection aborted",
    "connection refused",
)

# ========================================================================
# INDEXER
# ========================================================================

DEFAULT_CONFIRMATION_DEPTH = 2
MAX_EXECUTION_SECONDS = 23.0  # Invocations are killed shortly after this
PARALLEL_TOKEN_LIMIT = 6  # Balance between speed and rate limits
TOKEN_BATCH_PAUSE_SECONDS = 0.1  # Pause between concurrent token batches

# Adaptive scan range: (blocks behind strictly greater than, blocks per call)
MIN_BLOCK_RANGE = 100
MAX_BLOCK_RANGE = 2000
BLOCK_RANGE_TIERS = (
    (10000, MAX_BLOCK_RANGE),
    (5000, 1000),
    (1000, 500),
    (500, 300),
)

# Catch-up policy: backlog older than this is abandoned (lossy, see gap auditor)
CATCH_UP_THRESHOLD_BLOCKS = 100000
CATCH_UP_RESUME_BLOCKS = 10000

# Reorg handling
REORG_LOOKBACK_BLOCKS = 100

# Swap rows per INSERT statement
SWAP_INSERT_CHUNK_SIZE = 500

# ========================================================================
# GAP AUDITOR
# ========================================================================

GAP_AUDIT_WINDOW_SIZE = 1000
GAP_AUDIT_MAX_TOKENS = 10

# ========================================================================
# HISTORY SEEDING
# ========================================================================

HISTORY_SEED_TIMEOUT = 10.0
HISTORY_SEED_HOURS = 24
