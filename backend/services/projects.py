# services/projects.py — Project ownership, membership and access checks
import logging
from typing import List, Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from auth import CurrentUser
from errors import ConflictError, NotFoundError, ForbiddenError
from models import Board, Project, ProjectMember, User

logger = logging.getLogger("kanban-hub.projects")


async def user_owns_project(db: AsyncSession, user_id: str, project_id: str) -> bool:
    stmt = select(Project.id).where(Project.id == project_id, Project.owner_id == user_id)
    return (await db.execute(stmt)).scalar_one_or_none() is not None


async def user_has_project_access(db: AsyncSession, user_id: str, project_id: str) -> bool:
    """Owners and members have access"""
    if await user_owns_project(db, user_id, project_id):
        return True
    stmt = select(ProjectMember.id).where(
        ProjectMember.project_id == project_id, ProjectMember.user_id == user_id,
    )
    return (await db.execute(stmt)).scalar_one_or_none() is not None


def _accessible_filter(user_id: str):
    member_of = select(ProjectMember.project_id).where(ProjectMember.user_id == user_id)
    return or_(Project.owner_id == user_id, Project.id.in_(member_of))


async def list_accessible_projects(db: AsyncSession, user_id: str) -> List[Project]:
    stmt = (
        select(Project)
        .where(_accessible_filter(user_id))
        .order_by(Project.created_at.desc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def list_accessible_boards(db: AsyncSession, user_id: str) -> List[Board]:
    stmt = (
        select(Board)
        .join(Project, Board.project_id == Project.id)
        .where(_accessible_filter(user_id))
        .order_by(Board.created_at.asc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def get_accessible_project(db: AsyncSession, project_id: str, user: CurrentUser) -> Project:
    """Project the user may read; hidden projects look missing"""
    project = (await db.execute(select(Project).where(Project.id == project_id))).scalar_one_or_none()
    if not project or not await user_has_project_access(db, user.id, project_id):
        raise NotFoundError("Project not found")
    return project


async def get_project_board(db: AsyncSession, project_id: str, board_id: str, user: CurrentUser) -> Board:
    await get_accessible_project(db, project_id, user)
    stmt = select(Board).where(Board.id == board_id, Board.project_id == project_id)
    board = (await db.execute(stmt)).scalar_one_or_none()
    if not board:
        raise NotFoundError("Board not found")
    return board


async def get_company_user(db: AsyncSession, user_id: str, company_id: str) -> Optional[User]:
    stmt = select(User).where(
        User.id == user_id, User.company_id == company_id, User.is_active.is_(True),
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def create_project(
    db: AsyncSession, user: CurrentUser, name: str,
    description: Optional[str] = None, group_id: Optional[str] = None,
) -> Project:
    project = Project(
        name=name,
        description=description,
        owner_id=user.id,
        company_id=user.company_id,
        group_id=group_id,
    )
    db.add(project)
    await db.commit()
    await db.refresh(project)
    logger.info(f"Project {project.id} created by {user.id}")
    return project


async def add_member(db: AsyncSession, project_id: str, member_id: str, user: CurrentUser) -> ProjectMember:
    project = await get_accessible_project(db, project_id, user)
    if project.owner_id != user.id:
        raise ForbiddenError("Only the owner can add members")

    if not await get_company_user(db, member_id, user.company_id):
        raise NotFoundError("User not found")
    if member_id == project.owner_id:
        raise ConflictError("The owner already has access")

    existing = await db.execute(
        select(ProjectMember.id).where(
            ProjectMember.project_id == project_id, ProjectMember.user_id == member_id,
        )
    )
    if existing.scalar_one_or_none():
        raise ConflictError("User is already a member")

    member = ProjectMember(project_id=project_id, user_id=member_id)
    db.add(member)
    await db.commit()
    await db.refresh(member)
    return member
