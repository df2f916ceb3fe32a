"""
Swap model.

One row per Swap event emitted by a token's AMM pool.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from chainsync.models.base import Base
from chainsync.models.types import AddressType, EtherType, HashType


class Swap(Base):
    """
    Swap log.

    Append-only: rows are inserted once per tx_hash and only ever
    removed by a reorg rollback.
    """

    __tablename__ = "swaps"
    __table_args__ = (
        Index("ix_swaps_token_block", "token_address", "block_number"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    token_address: Mapped[str] = mapped_column(
        AddressType,
        ForeignKey("tokens.token_address", ondelete="CASCADE"),
        nullable=False,
    )
    amm_address: Mapped[str] = mapped_column(AddressType, nullable=False)
    user_address: Mapped[str] = mapped_column(
        AddressType, nullable=False, index=True
    )

    # Amounts (ether units)
    eth_in: Mapped[Decimal] = mapped_column(EtherType, nullable=False, default=Decimal("0"))
    token_in: Mapped[Decimal] = mapped_column(EtherType, nullable=False, default=Decimal("0"))
    eth_out: Mapped[Decimal] = mapped_column(EtherType, nullable=False, default=Decimal("0"))
    token_out: Mapped[Decimal] = mapped_column(EtherType, nullable=False, default=Decimal("0"))

    # Idempotency key
    tx_hash: Mapped[str] = mapped_column(
        HashType, nullable=False, unique=True, index=True
    )
    log_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Provenance
    block_number: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True
    )
    block_hash: Mapped[str] = mapped_column(HashType, nullable=False)
    swapped_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Swap(tx_hash={self.tx_hash[:16]}..., "
            f"token={self.token_address}, block={self.block_number})>"
        )
