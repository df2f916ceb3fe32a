"""
Token model.

One row per token deployed by the launchpad factory.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from chainsync.models.base import Base
from chainsync.models.types import AddressType, EtherType, HashType

NAME_MAX_LENGTH = 100
SYMBOL_MAX_LENGTH = 20


class Token(Base):
    """
    Launched token registry.

    Reserves are refreshed from the pool contract after every swap batch;
    total_volume_eth only ever grows. block_number/block_hash record the
    launch event's block and scope reorg rollbacks.
    """

    __tablename__ = "tokens"
    __table_args__ = (
        CheckConstraint("total_volume_eth >= 0", name="check_tokens_volume_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Identification (lowercase)
    token_address: Mapped[str] = mapped_column(
        AddressType, nullable=False, unique=True, index=True
    )
    amm_address: Mapped[str] = mapped_column(
        AddressType, nullable=False, unique=True, index=True
    )

    # Metadata
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)
    symbol: Mapped[str] = mapped_column(String(SYMBOL_MAX_LENGTH), nullable=False)
    creator_address: Mapped[str] = mapped_column(AddressType, nullable=False)

    # Launch parameters
    liquidity_percent: Mapped[int] = mapped_column(Integer, nullable=False)
    initial_liquidity_eth: Mapped[Decimal] = mapped_column(
        EtherType, nullable=False
    )
    launch_price_eth: Mapped[Decimal] = mapped_column(
        EtherType, nullable=False, default=Decimal("0")
    )

    # Chain-authoritative state
    current_eth_reserve: Mapped[Decimal] = mapped_column(
        EtherType, nullable=False, default=Decimal("0")
    )
    current_token_reserve: Mapped[Decimal] = mapped_column(
        EtherType, nullable=False, default=Decimal("0")
    )
    total_volume_eth: Mapped[Decimal] = mapped_column(
        EtherType, nullable=False, default=Decimal("0")
    )
    holder_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    # Provenance
    block_number: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True
    )
    block_hash: Mapped[str] = mapped_column(HashType, nullable=False)
    launched_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
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
            f"<Token(symbol={self.symbol}, address={self.token_address}, "
            f"block={self.block_number})>"
        )
