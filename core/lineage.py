"""
Lineage Tracker - Duplication Parent Pointers

A duplicated design remembers the design it was copied from in its
``origin_id`` column. There is no forward table: the children of X are
simply "all designs whose origin_id is X".

Deleting a design must never leave a child pointing at a row that no longer
exists, so sever_lineage() clears those pointers inside the same transaction
that deletes the parent. The caller owns the transaction: if anything later
in it fails, the rollback restores the pointers together with the parent.
"""

import logging
from typing import List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.design import Design

logger = logging.getLogger(__name__)


def record_duplication(origin_id: str, new_design: Design) -> Design:
    """Mark ``new_design`` as a duplicate of ``origin_id``."""
    new_design.origin_id = origin_id
    return new_design


async def sever_lineage(session: AsyncSession, deleted_id: str) -> int:
    """
    Clear the origin pointer of every direct duplicate of ``deleted_id``.

    Runs as one bulk UPDATE in the caller's transaction and returns the number
    of duplicates that were detached. Duplicates themselves are untouched
    otherwise.
    """
    result = await session.execute(
        update(Design)
        .where(Design.origin_id == deleted_id)
        .values(origin_id=None)
        .execution_options(synchronize_session=False)
    )
    detached = result.rowcount or 0
    if detached:
        logger.info(f"Detached {detached} duplicate(s) from design {deleted_id}")
    return detached


async def duplicates_of(session: AsyncSession, design_id: str) -> List[Design]:
    """Direct duplicates of a design (query-time reverse lookup)."""
    result = await session.execute(
        select(Design).where(Design.origin_id == design_id).order_by(Design.created_at)
    )
    return list(result.scalars().all())
