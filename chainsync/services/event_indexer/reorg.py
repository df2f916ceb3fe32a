"""
Reorg Detector / Rollback.

Verifies the stored watermark block against the live chain before an
invocation builds on it and, on mismatch, deletes every derived row above
the newest block that still agrees with the chain.
"""

from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from chainsync.config.constants import REORG_LOOKBACK_BLOCKS
from chainsync.repositories import (
    IndexerStateRepository,
    SwapRepository,
    TokenRepository,
)
from chainsync.utils.conversions import normalize_hash

from .schemas import ReorgCheck, RollbackSummary


class ReorgDetector:
    """Detect chain reorganizations below the watermark and repair them."""

    def __init__(self, chain: Any, lookback: int = REORG_LOOKBACK_BLOCKS) -> None:
        """
        Initialize detector.

        Args:
            chain: Chain client
            lookback: Maximum number of blocks to walk back
        """
        self.chain = chain
        self.lookback = lookback

    async def detect(
        self,
        session: AsyncSession,
        last_indexed_block: int,
        last_block_hash: str | None,
    ) -> ReorgCheck:
        """
        Compare the watermark block with the live chain.

        Args:
            session: Database session
            last_indexed_block: Stored watermark
            last_block_hash: Stored hash of the watermark block

        Returns:
            ReorgCheck with the anchor to roll back to. A failure reading
            the watermark block is returned as an error with
            reorg_detected=False; once a reorg is confirmed, a failure
            during the ancestor search falls back to the lookback floor.
        """
        if not last_block_hash or last_indexed_block == 0:
            return ReorgCheck(reorg_detected=False, anchor_block=last_indexed_block)

        floor = max(0, last_indexed_block - self.lookback)

        try:
            live = await self.chain.get_block(last_indexed_block)
        except Exception as e:
            logger.error(f"[Reorg] Detection failed: {e}")
            return ReorgCheck(
                reorg_detected=False,
                anchor_block=last_indexed_block,
                error=str(e),
            )

        if live is None:
            logger.warning(
                f"[Reorg] Block {last_indexed_block} not found, "
                f"chain may have reorged"
            )
            return ReorgCheck(reorg_detected=True, anchor_block=floor)

        if live.hash == normalize_hash(last_block_hash):
            return ReorgCheck(reorg_detected=False, anchor_block=last_indexed_block)

        logger.warning(
            f"[Reorg] Block {last_indexed_block} hash mismatch: "
            f"stored {last_block_hash}, chain {live.hash}"
        )

        try:
            anchor = await self._find_anchor(session, last_indexed_block - 1, floor)
        except Exception as e:
            logger.error(
                f"[Reorg] Ancestor search failed, rolling back to {floor}: {e}"
            )
            return ReorgCheck(
                reorg_detected=True,
                anchor_block=floor,
                error=f"ancestor search failed: {e}",
            )

        return ReorgCheck(reorg_detected=True, anchor_block=anchor)

    async def _find_anchor(self, session: AsyncSession, from_block: int, floor: int) -> int:
        """
        Walk back to the newest block whose stored hash matches the chain.

        Blocks without stored rows carry no evidence and are skipped.
        Falls back to the floor when nothing matches.
        """
        token_repo = TokenRepository(session)
        swap_repo = SwapRepository(session)

        block_number = from_block
        while block_number > floor:
            stored_hash = await token_repo.get_block_hash(block_number)
            if stored_hash is None:
                stored_hash = await swap_repo.get_block_hash(block_number)

            if stored_hash:
                live = await self.chain.get_block(block_number)
                if live is not None and live.hash == normalize_hash(stored_hash):
                    logger.info(f"[Reorg] Found common ancestor at block {block_number}")
                    return block_number

            block_number -= 1

        logger.warning(f"[Reorg] No common ancestor found, rolling back to {floor}")
        return floor

    async def rollback(
        self,
        session: AsyncSession,
        state_id: int,
        anchor_block: int,
    ) -> RollbackSummary:
        """
        Delete everything derived from blocks above the anchor.

        Removes swaps above the anchor, all swaps of tokens launched above
        it, those tokens, and resets the watermark with its hash cleared.
        The caller commits.

        Args:
            session: Database session
            state_id: Indexer state row id
            anchor_block: Newest block still consistent with the chain

        Returns:
            RollbackSummary
        """
        token_repo = TokenRepository(session)
        swap_repo = SwapRepository(session)
        state_repo = IndexerStateRepository(session)

        logger.warning(f"[Reorg] Rolling back data from blocks > {anchor_block}")

        orphaned_tokens = await token_repo.get_addresses_above(anchor_block)

        deleted_swaps = await swap_repo.delete_above(anchor_block)
        deleted_swaps += await swap_repo.delete_for_tokens(orphaned_tokens)
        deleted_tokens = await token_repo.delete_above(anchor_block)

        await state_repo.reset_to(state_id, anchor_block)

        summary = RollbackSummary(
            anchor_block=anchor_block,
            deleted_tokens=deleted_tokens,
            deleted_swaps=deleted_swaps,
        )
        logger.warning(
            f"[Reorg] Rolled back to block {anchor_block}: "
            f"{deleted_tokens} tokens, {deleted_swaps} swaps deleted"
        )
        return summary
