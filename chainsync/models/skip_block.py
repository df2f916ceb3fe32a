"""
Skip Block model.

Operator-maintained list of blocks whose events must not be ingested.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from chainsync.models.base import Base

# indexer_type values
SKIP_ALL = "all"
SKIP_LAUNCH = "launch"
SKIP_SWAP = "swap"


class SkipBlock(Base):
    """Block excluded from one indexer (or all of them)."""

    __tablename__ = "skip_blocks"
    __table_args__ = (
        UniqueConstraint("block_number", "indexer_type", name="uq_skip_blocks_block_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    indexer_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SKIP_ALL
    )  # all, launch, swap
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
