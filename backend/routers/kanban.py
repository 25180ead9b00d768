# routers/kanban.py — Columns and cards of a board, moves and reordering
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from errors import NotFoundError
from models import CardPriority
from responses import success_response
from schemas import card_out, column_out
from services import kanban
from services.projects import get_company_user, get_project_board

router = APIRouter(prefix="/api/v1/projects", tags=["Kanban Board"])


# ============================================================
# SCHEMAS
# ============================================================

class ColumnCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=50)
    color: Optional[str] = None


class ColumnOrderItem(BaseModel):
    id: str
    order: int = Field(..., ge=0)


class ColumnOrder(BaseModel):
    columns: List[ColumnOrderItem]


class CardCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=500)
    column_id: str = Field(..., alias="columnId")
    description: Optional[str] = None
    priority: CardPriority = CardPriority.MEDIUM
    assigned_user_id: Optional[str] = Field(default=None, alias="assignedUserId")
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")


class CardMove(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    column_id: str = Field(..., alias="columnId")
    order: Optional[int] = Field(default=None, ge=0)


# ============================================================
# MOVE / REORDER
# ============================================================

@router.patch("/{project_id}/boards/{board_id}/cards/{card_id}/move")
async def move_card(
    project_id: str,
    board_id: str,
    card_id: str,
    data: CardMove,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Move a card to a column of the same board, at `order` or at the end"""
    await get_project_board(db, project_id, board_id, user)
    card = await kanban.move_card(db, board_id, card_id, data.column_id, data.order)
    return success_response(card_out(card), "Card moved")


@router.patch("/{project_id}/boards/{board_id}/columns/order")
async def reorder_columns(
    project_id: str,
    board_id: str,
    data: ColumnOrder,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await get_project_board(db, project_id, board_id, user)
    ordered = [item.id for item in sorted(data.columns, key=lambda item: item.order)]
    await kanban.reorder_columns(db, board_id, ordered)
    return success_response(message="Column order updated")


# ============================================================
# COLUMNS
# ============================================================

@router.post("/{project_id}/boards/{board_id}/columns", status_code=201)
async def create_column(
    project_id: str,
    board_id: str,
    data: ColumnCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await get_project_board(db, project_id, board_id, user)
    column = await kanban.create_column(db, board_id, data.title, data.color)
    return success_response(column_out(column), "Column created")


@router.delete("/{project_id}/boards/{board_id}/columns/{column_id}")
async def delete_column(
    project_id: str,
    board_id: str,
    column_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Delete a column together with its cards"""
    await get_project_board(db, project_id, board_id, user)
    removed = await kanban.delete_column(db, board_id, column_id)
    return success_response({"column_id": column_id, "cards_removed": removed}, "Column deleted")


# ============================================================
# CARDS
# ============================================================

@router.post("/{project_id}/boards/{board_id}/cards", status_code=201)
async def create_card(
    project_id: str,
    board_id: str,
    data: CardCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await get_project_board(db, project_id, board_id, user)
    if data.assigned_user_id and not await get_company_user(db, data.assigned_user_id, user.company_id):
        raise NotFoundError("Assigned user not found")

    card = await kanban.create_card(
        db,
        board_id,
        data.column_id,
        data.title,
        reporter_id=user.id,
        description=data.description,
        priority=data.priority,
        assigned_user_id=data.assigned_user_id,
        due_date=data.due_date,
        actor_name=user.display_name,
    )
    return success_response(card_out(card), "Card created")


@router.delete("/{project_id}/boards/{board_id}/cards/{card_id}")
async def delete_card(
    project_id: str,
    board_id: str,
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await get_project_board(db, project_id, board_id, user)
    await kanban.delete_card(db, board_id, card_id)
    return success_response({"card_id": card_id}, "Card deleted")
