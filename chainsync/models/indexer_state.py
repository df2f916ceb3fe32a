"""
Indexer State model.

Singleton watermark of the event indexer.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from chainsync.models.base import Base
from chainsync.models.types import HashType


class IndexerState(Base):
    """
    Tracks the indexer watermark.

    Used to:
    - Resume scanning from the last fully indexed block
    - Detect chain reorganizations (hash of the watermark block)
    - Remember which RPC endpoint last answered
    """

    __tablename__ = "indexer_state"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Highest block whose events are fully persisted
    last_indexed_block: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )
    # Null until the watermark block hash has been (re)verified
    last_block_hash: Mapped[str | None] = mapped_column(
        HashType, nullable=True
    )
    confirmation_depth: Mapped[int] = mapped_column(
        Integer, nullable=False, default=2
    )

    # Last known-good RPC endpoint index
    endpoint_cursor: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<IndexerState(last_indexed_block={self.last_indexed_block}, "
            f"confirmation_depth={self.confirmation_depth})>"
        )
