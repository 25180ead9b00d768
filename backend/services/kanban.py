# services/kanban.py — Card moves, column reordering and ordering-aware CRUD
import logging
from collections import Counter
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from errors import NotFoundError, ValidationError
from models import Board, BoardColumn, Card, CardPriority, CardStatus, CardTag
from repositories.containers import (
    append_card,
    append_column,
    get_board_with_columns,
    get_column_with_cards,
    list_cards,
    list_columns,
    persist_reorder,
    relocate,
    remove_card,
    remove_column,
)
from services.notifications import notify_assignment
from services.ordering import allocate, resequence

logger = logging.getLogger("kanban-hub.kanban")


async def get_board_card(db: AsyncSession, board_id: str, card_id: str) -> Card:
    stmt = (
        select(Card)
        .where(Card.id == card_id, Card.board_id == board_id)
        .execution_options(populate_existing=True)
    )
    card = (await db.execute(stmt)).scalar_one_or_none()
    if not card:
        raise NotFoundError("Card not found")
    return card


async def load_card(db: AsyncSession, card_id: str) -> Card:
    """Card with its tags, read fresh for serialization"""
    stmt = (
        select(Card)
        .where(Card.id == card_id)
        .options(selectinload(Card.tags).selectinload(CardTag.tag))
        .execution_options(populate_existing=True)
    )
    card = (await db.execute(stmt)).scalar_one_or_none()
    if not card:
        raise NotFoundError("Card not found")
    return card


# ============================================================
# MOVE / REORDER
# ============================================================

async def move_card(
    db: AsyncSession,
    board_id: str,
    card_id: str,
    target_column_id: str,
    target_index: Optional[int] = None,
) -> Card:
    """Move a card to `target_index` of a column on the same board.

    Omitting the index appends. Both the destination and (when different) the
    source column end up dense.
    """
    card = await get_board_card(db, board_id, card_id)
    column, cards = await get_column_with_cards(db, target_column_id, board_id=board_id)

    source_column_id = card.column_id
    siblings = [c for c in cards if c.id != card.id]
    allocation = allocate(siblings, target_index)

    await relocate(db, card, column, allocation.value)
    await persist_reorder(db, Card, allocation.affected, column.id)

    if source_column_id != column.id:
        remaining = await list_cards(db, source_column_id)
        await persist_reorder(db, Card, resequence(remaining), source_column_id)

    await db.commit()
    logger.info(
        f"Card {card_id} moved from column {source_column_id} to {column.id} at {allocation.value}"
    )
    return await load_card(db, card_id)


def _permutation_errors(current_ids: Sequence[str], ordered_ids: Sequence[str]) -> dict:
    current = set(current_ids)
    counts = Counter(ordered_ids)
    errors = {}
    missing = [cid for cid in current_ids if cid not in counts]
    unknown = [cid for cid in counts if cid not in current]
    duplicates = [cid for cid, n in counts.items() if n > 1]
    if missing:
        errors["missing"] = missing
    if unknown:
        errors["unknown"] = unknown
    if duplicates:
        errors["duplicates"] = duplicates
    return errors


async def reorder_columns(db: AsyncSession, board_id: str, ordered_column_ids: Sequence[str]) -> List[BoardColumn]:
    """Rewrite column positions so that column i of the list sits at i"""
    board, columns = await get_board_with_columns(db, board_id)

    errors = _permutation_errors([c.id for c in columns], ordered_column_ids)
    if errors:
        raise ValidationError("Column order must list every column of the board exactly once", details=errors)

    by_id = {c.id: c for c in columns}
    assignments = [
        (by_id[cid], index)
        for index, cid in enumerate(ordered_column_ids)
        if by_id[cid].position != index
    ]
    await persist_reorder(db, BoardColumn, assignments, board.id)
    await db.commit()
    logger.info(f"Columns of board {board.id} reordered ({len(assignments)} changed)")
    return await list_columns(db, board.id)


# ============================================================
# ORDERING-AWARE CRUD
# ============================================================

async def create_board(db: AsyncSession, project_id: str, name: str, description: Optional[str] = None) -> Board:
    board = Board(project_id=project_id, name=name, description=description)
    db.add(board)
    await db.commit()
    await db.refresh(board)
    return board


async def get_board_detail(db: AsyncSession, board_id: str) -> Tuple[Board, List[Tuple[BoardColumn, List[Card]]]]:
    board, columns = await get_board_with_columns(db, board_id)
    stmt = (
        select(Card)
        .where(Card.board_id == board.id)
        .options(selectinload(Card.tags).selectinload(CardTag.tag))
        .order_by(Card.position.asc(), Card.created_at.asc(), Card.id.asc())
        .execution_options(populate_existing=True)
    )
    cards = (await db.execute(stmt)).scalars().all()
    by_column = {c.id: [] for c in columns}
    for card in cards:
        by_column.setdefault(card.column_id, []).append(card)
    return board, [(column, by_column[column.id]) for column in columns]


async def create_column(db: AsyncSession, board_id: str, title: str, color: Optional[str] = None) -> BoardColumn:
    board, _ = await get_board_with_columns(db, board_id)
    column = BoardColumn(title=title, color=color)
    await append_column(db, column, board)
    await db.commit()
    await db.refresh(column)
    logger.info(f"Column {column.id} created on board {board.id} at {column.position}")
    return column


async def delete_column(db: AsyncSession, board_id: str, column_id: str) -> int:
    column, _ = await get_column_with_cards(db, column_id, board_id=board_id)
    removed = await remove_column(db, column)
    await db.commit()
    logger.info(f"Column {column_id} deleted from board {board_id} with {removed} cards")
    return removed


async def create_card(
    db: AsyncSession,
    board_id: str,
    column_id: str,
    title: str,
    reporter_id: str,
    description: Optional[str] = None,
    priority: CardPriority = CardPriority.MEDIUM,
    assigned_user_id: Optional[str] = None,
    due_date: Optional[datetime] = None,
    actor_name: Optional[str] = None,
) -> Card:
    column, _ = await get_column_with_cards(db, column_id, board_id=board_id)
    card = Card(
        title=title,
        description=description,
        status=CardStatus.NEW,
        priority=priority,
        reporter_id=reporter_id,
        assigned_user_id=assigned_user_id,
        due_date=due_date,
    )
    await append_card(db, card, column)
    await db.commit()
    card_id = card.id
    logger.info(f"Card {card_id} created in column {column.id} at {card.position}")

    if assigned_user_id and assigned_user_id != reporter_id:
        await notify_assignment(db, assigned_user_id, actor_name or "Alguém", card)
    return await load_card(db, card_id)


async def delete_card(db: AsyncSession, board_id: str, card_id: str) -> None:
    card = await get_board_card(db, board_id, card_id)
    await remove_card(db, card)
    await db.commit()
    logger.info(f"Card {card_id} deleted from board {board_id}")
