# repositories/transfer_log.py — Append-only transfer audit trail
from dataclasses import dataclass, asdict
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import TransferLog, TransferType


@dataclass
class TransferEntry:
    type: TransferType
    entity_type: str
    entity_id: str
    entity_title: Optional[str]
    from_type: str
    from_id: str
    from_title: Optional[str]
    to_type: str
    to_id: str
    to_title: Optional[str]
    user_id: str


async def log_transfer(db: AsyncSession, entry: TransferEntry) -> TransferLog:
    """Add the row to the caller's transaction; it commits with the mutation"""
    row = TransferLog(**asdict(entry))
    db.add(row)
    await db.flush()
    return row


async def history_for_user(
    db: AsyncSession, user_id: str, limit: int = 50, offset: int = 0,
) -> List[TransferLog]:
    stmt = (
        select(TransferLog)
        .where(TransferLog.user_id == user_id)
        .order_by(TransferLog.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def history_for_entity(db: AsyncSession, entity_type: str, entity_id: str) -> List[TransferLog]:
    stmt = (
        select(TransferLog)
        .where(TransferLog.entity_type == entity_type, TransferLog.entity_id == entity_id)
        .order_by(TransferLog.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
