# repositories/containers.py — Storage access for ordered containers
"""
The only module that writes ordering fields (`position`) and parent foreign
keys (`column_id`, `board_id`, `project_id`, `owner_id`).

Every write is guarded by the parent the caller read: if another request moved
the row in the meantime the UPDATE matches nothing and ConflictError is
raised. Before the caller commits, the container's positions are re-checked
for duplicates. Nothing here commits; the service owns the transaction.
"""
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple, Union

from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from errors import ConflictError, NotFoundError
from models import Board, BoardColumn, Card, CardTag, Project
from services.ordering import resequence

OrderedModel = Union[type[Card], type[BoardColumn]]


class ContainerKind(str, Enum):
    COLUMN = "column"
    BOARD = "board"


def _parent_key(model: OrderedModel):
    if model is Card:
        return Card.column_id
    if model is BoardColumn:
        return BoardColumn.board_id
    raise TypeError(f"{model.__name__} is not an ordered model")


# ============================================================
# READS
# ============================================================

async def list_cards(db: AsyncSession, column_id: str, exclude_id: Optional[str] = None) -> List[Card]:
    """Cards of a column ordered by position, freshly read from storage"""
    stmt = (
        select(Card)
        .where(Card.column_id == column_id)
        .order_by(Card.position.asc(), Card.created_at.asc(), Card.id.asc())
        .execution_options(populate_existing=True)
    )
    if exclude_id:
        stmt = stmt.where(Card.id != exclude_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_columns(db: AsyncSession, board_id: str, exclude_id: Optional[str] = None) -> List[BoardColumn]:
    stmt = (
        select(BoardColumn)
        .where(BoardColumn.board_id == board_id)
        .order_by(BoardColumn.position.asc(), BoardColumn.created_at.asc(), BoardColumn.id.asc())
        .execution_options(populate_existing=True)
    )
    if exclude_id:
        stmt = stmt.where(BoardColumn.id != exclude_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_column_with_cards(
    db: AsyncSession, column_id: str, board_id: Optional[str] = None,
) -> Tuple[BoardColumn, List[Card]]:
    stmt = select(BoardColumn).where(BoardColumn.id == column_id)
    if board_id:
        stmt = stmt.where(BoardColumn.board_id == board_id)
    column = (await db.execute(stmt)).scalar_one_or_none()
    if not column:
        raise NotFoundError("Column not found")
    return column, await list_cards(db, column.id)


async def get_board_with_columns(db: AsyncSession, board_id: str) -> Tuple[Board, List[BoardColumn]]:
    stmt = select(Board).where(Board.id == board_id)
    board = (await db.execute(stmt)).scalar_one_or_none()
    if not board:
        raise NotFoundError("Board not found")
    return board, await list_columns(db, board.id)


async def get_container_with_siblings(
    db: AsyncSession, kind: ContainerKind, container_id: str,
) -> Tuple[Any, List[Any]]:
    if kind == ContainerKind.COLUMN:
        return await get_column_with_cards(db, container_id)
    if kind == ContainerKind.BOARD:
        return await get_board_with_columns(db, container_id)
    raise ValueError(f"Unknown container kind: {kind}")


async def get_entity_with_ancestry(db: AsyncSession, entity_type: str, entity_id: str):
    """Card with column -> board -> project, or Board with project"""
    if entity_type == "card":
        stmt = (
            select(Card)
            .where(Card.id == entity_id)
            .options(
                selectinload(Card.column),
                selectinload(Card.board).selectinload(Board.project),
            )
            .execution_options(populate_existing=True)
        )
        label = "Card"
    elif entity_type == "board":
        stmt = (
            select(Board)
            .where(Board.id == entity_id)
            .options(selectinload(Board.project))
            .execution_options(populate_existing=True)
        )
        label = "Board"
    else:
        raise ValueError(f"Unsupported entity type: {entity_type}")

    entity = (await db.execute(stmt)).scalar_one_or_none()
    if not entity:
        raise NotFoundError(f"{label} not found")
    return entity


# ============================================================
# WRITES
# ============================================================

async def validate_unique_order(db: AsyncSession, model: OrderedModel, parent_id: str) -> None:
    """Raise ConflictError if two siblings share a position"""
    await db.flush()
    parent_key = _parent_key(model)
    stmt = (
        select(model.position, func.count(model.id))
        .where(parent_key == parent_id)
        .group_by(model.position)
        .having(func.count(model.id) > 1)
    )
    duplicates = (await db.execute(stmt)).all()
    if duplicates:
        positions = sorted(row[0] for row in duplicates)
        raise ConflictError(
            f"Concurrent modification detected: duplicate positions {positions}. Reload and retry."
        )


async def persist_reorder(
    db: AsyncSession,
    model: OrderedModel,
    assignments: Sequence[Tuple[Any, int]],
    parent_id: str,
) -> None:
    """Write new positions for siblings of one container, then re-validate it"""
    parent_key = _parent_key(model)
    for entity, value in assignments:
        result = await db.execute(
            update(model)
            .where(model.id == entity.id, parent_key == parent_id)
            .values(position=value)
        )
        if result.rowcount != 1:
            raise ConflictError(
                f"{model.__name__} {entity.id} is no longer in the expected container. Reload and retry."
            )
    await validate_unique_order(db, model, parent_id)


async def relocate(db: AsyncSession, entity: Any, new_parent: Any, new_order: Optional[int] = None) -> None:
    """Move a card to a column (and its board) or a board to a project"""
    if isinstance(entity, Card):
        values = {"column_id": new_parent.id, "board_id": new_parent.board_id}
        if new_order is not None:
            values["position"] = new_order
        stmt = (
            update(Card)
            .where(Card.id == entity.id, Card.column_id == entity.column_id)
            .values(**values)
        )
    elif isinstance(entity, Board):
        stmt = (
            update(Board)
            .where(Board.id == entity.id, Board.project_id == entity.project_id)
            .values(project_id=new_parent.id)
        )
    else:
        raise TypeError(f"Cannot relocate {type(entity).__name__}")

    result = await db.execute(stmt)
    if result.rowcount != 1:
        raise ConflictError(f"{type(entity).__name__} was modified concurrently. Reload and retry.")


async def reassign_owner(db: AsyncSession, project: Project, new_owner_id: str) -> None:
    """Compare-and-set the project owner so two transfers cannot both win"""
    result = await db.execute(
        update(Project)
        .where(Project.id == project.id, Project.owner_id == project.owner_id)
        .values(owner_id=new_owner_id)
    )
    if result.rowcount != 1:
        raise ConflictError("Project ownership changed concurrently. Reload and retry.")


async def append_card(db: AsyncSession, card: Card, column: BoardColumn) -> Card:
    siblings = await list_cards(db, column.id)
    card.column_id = column.id
    card.board_id = column.board_id
    card.position = len(siblings)
    db.add(card)
    await validate_unique_order(db, Card, column.id)
    return card


async def append_column(db: AsyncSession, column: BoardColumn, board: Board) -> BoardColumn:
    siblings = await list_columns(db, board.id)
    column.board_id = board.id
    column.position = len(siblings)
    db.add(column)
    await validate_unique_order(db, BoardColumn, board.id)
    return column


async def remove_card(db: AsyncSession, card: Card) -> None:
    column_id = card.column_id
    await db.execute(delete(CardTag).where(CardTag.card_id == card.id))
    await db.execute(delete(Card).where(Card.id == card.id))
    remaining = await list_cards(db, column_id)
    await persist_reorder(db, Card, resequence(remaining), column_id)


async def remove_column(db: AsyncSession, column: BoardColumn) -> int:
    """Delete a column with its cards; returns the number of cards removed"""
    board_id = column.board_id
    card_ids = select(Card.id).where(Card.column_id == column.id)
    await db.execute(
        delete(CardTag)
        .where(CardTag.card_id.in_(card_ids))
        .execution_options(synchronize_session=False)
    )
    removed = await db.execute(delete(Card).where(Card.column_id == column.id))
    await db.execute(delete(BoardColumn).where(BoardColumn.id == column.id))
    remaining = await list_columns(db, board_id)
    await persist_reorder(db, BoardColumn, resequence(remaining), board_id)
    return removed.rowcount or 0
