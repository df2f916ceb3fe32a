"""
Event Indexer Schemas.

Invocation parameters, the structured report and intermediate results
passed between the indexer stages.
"""

import asyncio
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class IndexRequest:
    """
    Parameters of one indexer invocation.

    All fields are optional; defaults give an incremental run.
    """
    from_block: int | None = None
    to_block: int | None = None
    index_token_launches: bool = True
    index_swaps: bool = True
    skip_reorg_check: bool = False
    backfill_swaps: bool = False

    @classmethod
    def from_params(cls, params: dict[str, Any] | None) -> "IndexRequest":
        """
        Build a request from task kwargs or a JSON body.

        Accepts both snake_case and camelCase keys and ignores unknown ones.
        """
        params = params or {}
        aliases = {
            "fromBlock": "from_block",
            "toBlock": "to_block",
            "indexTokenLaunches": "index_token_launches",
            "indexSwaps": "index_swaps",
            "skipReorgCheck": "skip_reorg_check",
            "backfillSwaps": "backfill_swaps",
        }
        known = set(cls.__dataclass_fields__)
        values = {}
        for key, value in params.items():
            name = aliases.get(key, key)
            if name in known and value is not None:
                values[name] = value
        return cls(**values)


@dataclass(frozen=True)
class ScanPlan:
    """Scan window of one invocation."""
    current_block: int
    safe_block: int
    start_block: int
    end_block: int
    blocks_behind: int
    block_range: int
    caught_up_jump: bool = False

    @property
    def is_empty(self) -> bool:
        return self.start_block > self.end_block


@dataclass
class RollbackSummary:
    """What a reorg rollback removed."""
    anchor_block: int
    deleted_tokens: int = 0
    deleted_swaps: int = 0


@dataclass
class ReorgCheck:
    """Outcome of reorg detection."""
    reorg_detected: bool
    anchor_block: int
    error: str | None = None


@dataclass(frozen=True)
class SideEffectResult:
    """
    Result of a best-effort side effect.

    Logged and reported, never joined into the error list.
    """
    name: str
    ok: bool
    detail: str = ""


@dataclass
class IngestResult:
    """Partial result of an ingestor."""
    indexed: int = 0
    errors: list[str] = field(default_factory=list)
    timed_out: bool = False
    complete: bool = True
    # Best-effort tasks still running; collected by the caller
    pending_side_effects: list[asyncio.Task] = field(default_factory=list)


@dataclass
class IndexReport:
    """Structured report of one indexer invocation."""
    tokens_indexed: int = 0
    swaps_indexed: int = 0
    errors: list[str] = field(default_factory=list)
    reorg_detected: bool = False
    rollback: RollbackSummary | None = None
    from_block: int = 0
    to_block: int = 0
    timed_out: bool = False
    current_block: int = 0
    safe_block: int = 0
    last_indexed_block: int = 0
    blocks_behind: int = 0
    blocks_processed: int = 0
    block_processing_rate: int = 0
    execution_time_ms: int = 0
    message: str = ""
    side_effects: list[SideEffectResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the report (nested dataclasses included)."""
        return asdict(self)
