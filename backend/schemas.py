# schemas.py — Response shapes shared by the project, kanban and transfer routers
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from models import Board, BoardColumn, Card, Project, TransferLog


def _ts(dt) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat() if isinstance(dt, datetime) else str(dt)


def _enum(value) -> Optional[str]:
    return value.value if hasattr(value, "value") else value


class TagOut(BaseModel):
    id: str
    name: str
    color: Optional[str] = None


class CardOut(BaseModel):
    id: str
    board_id: str
    column_id: str
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    position: int
    reporter_id: Optional[str] = None
    assigned_user_id: Optional[str] = None
    due_date: Optional[str] = None
    tags: List[TagOut] = []
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ColumnOut(BaseModel):
    id: str
    board_id: str
    title: str
    position: int
    color: Optional[str] = None
    cards: List[CardOut] = []


class BoardOut(BaseModel):
    id: str
    project_id: str
    name: str
    description: Optional[str] = None
    columns: List[ColumnOut] = []
    created_at: Optional[str] = None


class ProjectOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    owner_id: str
    company_id: Optional[str] = None
    group_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class TransferLogOut(BaseModel):
    id: str
    type: str
    entity_type: str
    entity_id: str
    entity_title: Optional[str] = None
    from_type: str
    from_id: str
    from_title: Optional[str] = None
    to_type: str
    to_id: str
    to_title: Optional[str] = None
    user_id: str
    created_at: Optional[str] = None


def card_out(card: Card, with_tags: bool = True) -> dict:
    tags = []
    if with_tags:
        tags = [TagOut(id=ct.tag.id, name=ct.tag.name, color=ct.tag.color) for ct in card.tags]
    return CardOut(
        id=card.id,
        board_id=card.board_id,
        column_id=card.column_id,
        title=card.title,
        description=card.description,
        status=_enum(card.status),
        priority=_enum(card.priority),
        position=card.position,
        reporter_id=card.reporter_id,
        assigned_user_id=card.assigned_user_id,
        due_date=_ts(card.due_date),
        tags=tags,
        created_at=_ts(card.created_at),
        updated_at=_ts(card.updated_at),
    ).model_dump()


def column_out(column: BoardColumn, cards: Optional[List[Card]] = None) -> dict:
    return ColumnOut(
        id=column.id,
        board_id=column.board_id,
        title=column.title,
        position=column.position,
        color=column.color,
        cards=[CardOut(**card_out(c)) for c in (cards or [])],
    ).model_dump()


def board_out(board: Board, columns: Optional[list] = None) -> dict:
    """`columns` is a list of (column, cards) pairs"""
    return BoardOut(
        id=board.id,
        project_id=board.project_id,
        name=board.name,
        description=board.description,
        columns=[ColumnOut(**column_out(col, cards)) for col, cards in (columns or [])],
        created_at=_ts(board.created_at),
    ).model_dump()


def project_out(project: Project) -> dict:
    return ProjectOut(
        id=project.id,
        name=project.name,
        description=project.description,
        owner_id=project.owner_id,
        company_id=project.company_id,
        group_id=project.group_id,
        created_at=_ts(project.created_at),
        updated_at=_ts(project.updated_at),
    ).model_dump()


def transfer_log_out(row: TransferLog) -> dict:
    return TransferLogOut(
        id=row.id,
        type=_enum(row.type),
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        entity_title=row.entity_title,
        from_type=row.from_type,
        from_id=row.from_id,
        from_title=row.from_title,
        to_type=row.to_type,
        to_id=row.to_id,
        to_title=row.to_title,
        user_id=row.user_id,
        created_at=_ts(row.created_at),
    ).model_dump()
