# routers/projects.py — Projects, members and boards
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from models import Board
from responses import success_response
from schemas import board_out, project_out
from services import kanban, projects

router = APIRouter(prefix="/api/v1/projects", tags=["Projects"])


# ============================================================
# SCHEMAS
# ============================================================

class ProjectCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    group_id: Optional[str] = Field(default=None, alias="groupId")


class MemberAdd(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")


class BoardCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


# ============================================================
# PROJECT ENDPOINTS
# ============================================================

@router.post("", status_code=201)
async def create_project(
    data: ProjectCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    project = await projects.create_project(db, user, data.name, data.description, data.group_id)
    return success_response(project_out(project), "Project created")


@router.get("")
async def list_projects(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Projects the user owns or is a member of"""
    items = await projects.list_accessible_projects(db, user.id)
    return success_response([project_out(p) for p in items])


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    project = await projects.get_accessible_project(db, project_id, user)
    return success_response(project_out(project))


@router.post("/{project_id}/members", status_code=201)
async def add_member(
    project_id: str,
    data: MemberAdd,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    member = await projects.add_member(db, project_id, data.user_id, user)
    return success_response(
        {"id": member.id, "project_id": member.project_id, "user_id": member.user_id},
        "Member added",
    )


# ============================================================
# BOARD ENDPOINTS
# ============================================================

@router.post("/{project_id}/boards", status_code=201)
async def create_board(
    project_id: str,
    data: BoardCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await projects.get_accessible_project(db, project_id, user)
    board = await kanban.create_board(db, project_id, data.name, data.description)
    return success_response(board_out(board), "Board created")


@router.get("/{project_id}/boards")
async def list_boards(
    project_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await projects.get_accessible_project(db, project_id, user)
    result = await db.execute(
        select(Board).where(Board.project_id == project_id).order_by(Board.created_at.asc())
    )
    return success_response([board_out(b) for b in result.scalars().all()])


@router.get("/{project_id}/boards/{board_id}")
async def get_board(
    project_id: str,
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Board with its columns and cards in display order"""
    await projects.get_project_board(db, project_id, board_id, user)
    board, columns = await kanban.get_board_detail(db, board_id)
    return success_response(board_out(board, columns))
