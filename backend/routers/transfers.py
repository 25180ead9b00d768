# routers/transfers.py — Ownership transfer, board/card moves and card cloning
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from responses import success_response
from schemas import board_out, card_out, project_out, transfer_log_out
from services import transfers

router = APIRouter(prefix="/api/v1/transfers", tags=["Transfers"])


# ============================================================
# SCHEMAS
# ============================================================

class OwnershipTransfer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_owner_id: str = Field(..., alias="newOwnerId")


class BoardMove(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_project_id: str = Field(..., alias="targetProjectId")


class CardTransfer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_board_id: str = Field(..., alias="targetBoardId")
    target_column_id: Optional[str] = Field(default=None, alias="targetColumnId")


class CardClone(CardTransfer):
    copy_tags: bool = Field(default=False, alias="copyTags")


# ============================================================
# TRANSFERS
# ============================================================

@router.put("/projects/{project_id}/ownership")
async def transfer_ownership(
    project_id: str,
    data: OwnershipTransfer,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    project = await transfers.transfer_project_ownership(db, project_id, data.new_owner_id, user)
    return success_response(project_out(project), "Project ownership transferred")


@router.put("/boards/{board_id}/move")
async def move_board(
    board_id: str,
    data: BoardMove,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    board = await transfers.move_board(db, board_id, data.target_project_id, user)
    return success_response(board_out(board), "Board moved")


@router.put("/cards/{card_id}/move")
async def move_card(
    card_id: str,
    data: CardTransfer,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Move a card to the end of a column on another board"""
    card = await transfers.move_card(db, card_id, data.target_board_id, data.target_column_id, user)
    return success_response(card_out(card), "Card moved")


@router.post("/cards/{card_id}/clone", status_code=201)
async def clone_card(
    card_id: str,
    data: CardClone,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    card = await transfers.clone_card(
        db, card_id, data.target_board_id, data.target_column_id, user, copy_tags=data.copy_tags,
    )
    return success_response(card_out(card), "Card cloned")


# ============================================================
# HISTORY / TARGETS
# ============================================================

@router.get("/history")
async def transfer_history(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    rows = await transfers.transfer_history(db, user, limit=limit, offset=offset)
    return success_response([transfer_log_out(r) for r in rows])


@router.get("/history/{entity_type}/{entity_id}")
async def entity_history(
    entity_type: str,
    entity_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    rows = await transfers.entity_history(db, entity_type, entity_id, user)
    return success_response([transfer_log_out(r) for r in rows])


@router.get("/targets")
async def transfer_targets(
    entity_type: str = Query(..., alias="entityType"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Destinations available for a project, board or card transfer"""
    targets = await transfers.transfer_targets(db, user, entity_type)
    return success_response(targets)
