"""
Gap Auditor Schemas.
"""

from dataclasses import asdict, dataclass, field
from typing import Any

from chainsync.config.constants import GAP_AUDIT_MAX_TOKENS, GAP_AUDIT_WINDOW_SIZE


@dataclass
class GapAuditRequest:
    """Audit parameters: one token, or the most recently active ones."""
    token_address: str | None = None
    check_all: bool = False
    max_tokens: int = GAP_AUDIT_MAX_TOKENS
    window_size: int = GAP_AUDIT_WINDOW_SIZE

    @classmethod
    def from_params(cls, params: dict[str, Any] | None) -> "GapAuditRequest":
        """Build a request from task kwargs, ignoring unknown keys."""
        params = params or {}
        aliases = {"block_range_size": "window_size"}
        known = set(cls.__dataclass_fields__)
        values = {}
        for key, value in params.items():
            name = aliases.get(key, key)
            if name in known and value is not None:
                values[name] = value
        return cls(**values)


@dataclass
class WindowGap:
    """A block window where the chain has more swaps than the database."""
    start_block: int
    end_block: int
    on_chain_swaps: int
    database_swaps: int
    missing: int


@dataclass
class TokenGapReport:
    """Audit result of one token."""
    token_address: str
    amm_address: str
    name: str
    symbol: str
    from_block: int
    to_block: int
    windows_checked: int = 0
    gaps_found: int = 0
    missing_swaps: int = 0
    gaps: list[WindowGap] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def add_gap(self, gap: WindowGap) -> None:
        self.gaps.append(gap)
        self.gaps_found += 1
        self.missing_swaps += gap.missing


@dataclass
class GapAuditReport:
    """
    Audit summary.

    results lists tokens that have gaps or could not be fully checked.
    """
    tokens_checked: int = 0
    tokens_with_gaps: int = 0
    total_missing_swaps: int = 0
    results: list[TokenGapReport] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    timed_out: bool = False
    execution_time_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
