# services/transfers.py — Cross-container transfers with audit trail
"""
Moves and clones that cross container boundaries: project ownership, boards
between projects, cards between boards.

Each operation checks its preconditions, mutates through the container
repository, writes exactly one TransferLog row in the same transaction and
commits once. A failed check raises before anything is written.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import CurrentUser
from errors import BadRequestError, ForbiddenError, NotFoundError
from models import (
    Board, BoardColumn, Card, CardStatus, CardTag, NotificationPriority,
    NotificationType, Project, TransferLog, TransferType, User,
)
from repositories.containers import (
    append_card,
    get_entity_with_ancestry,
    list_cards,
    list_columns,
    persist_reorder,
    reassign_owner,
    relocate,
)
from repositories.transfer_log import (
    TransferEntry, history_for_entity, history_for_user, log_transfer,
)
from services.kanban import load_card
from services.notifications import notify_best_effort
from services.ordering import allocate, resequence
from services.projects import (
    get_company_user, list_accessible_boards, list_accessible_projects,
    user_has_project_access,
)

logger = logging.getLogger("kanban-hub.transfers")

CLONE_SUFFIX = " (cópia)"
TARGET_USER_LIMIT = 50
ENTITY_TYPES = ("project", "board", "card")


def _board_label(board: Board, project: Project) -> str:
    return f"{board.name} ({project.name})"


async def _get_project(db: AsyncSession, project_id: str) -> Optional[Project]:
    stmt = select(Project).where(Project.id == project_id).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


async def _resolve_destination(
    db: AsyncSession,
    actor: CurrentUser,
    target_board_id: str,
    target_column_id: Optional[str],
):
    """Target board (with project) and column; first column when none given"""
    stmt = select(Board).where(Board.id == target_board_id)
    target_board = (await db.execute(stmt)).scalar_one_or_none()
    if not target_board:
        raise NotFoundError("Target board not found")
    if not await user_has_project_access(db, actor.id, target_board.project_id):
        raise ForbiddenError("You must have access to the target project")
    target_project = await _get_project(db, target_board.project_id)

    if target_column_id:
        stmt = select(BoardColumn).where(
            BoardColumn.id == target_column_id, BoardColumn.board_id == target_board.id,
        )
        column = (await db.execute(stmt)).scalar_one_or_none()
        if not column:
            raise NotFoundError("Target column not found")
    else:
        columns = await list_columns(db, target_board.id)
        if not columns:
            raise BadRequestError("Target board has no columns")
        column = columns[0]
    return target_board, target_project, column


async def _load_source_card(db: AsyncSession, card_id: str, actor: CurrentUser) -> Card:
    card = await get_entity_with_ancestry(db, "card", card_id)
    if not await user_has_project_access(db, actor.id, card.board.project_id):
        raise ForbiddenError("You must have access to the source project")
    return card


# ============================================================
# OPERATIONS
# ============================================================

async def transfer_project_ownership(
    db: AsyncSession, project_id: str, new_owner_id: str, actor: CurrentUser,
) -> Project:
    project = await _get_project(db, project_id)
    if not project:
        raise NotFoundError("Project not found")
    if project.owner_id != actor.id:
        raise ForbiddenError("Only the owner can transfer ownership")

    new_owner = await get_company_user(db, new_owner_id, actor.company_id)
    if not new_owner:
        raise NotFoundError("New owner not found")
    if new_owner.id == actor.id:
        raise BadRequestError("Cannot transfer to yourself")

    previous_owner = (await db.execute(
        select(User).where(User.id == project.owner_id)
    )).scalar_one()

    await reassign_owner(db, project, new_owner.id)
    await log_transfer(db, TransferEntry(
        type=TransferType.OWNERSHIP_TRANSFER,
        entity_type="project",
        entity_id=project.id,
        entity_title=project.name,
        from_type="user",
        from_id=previous_owner.id,
        from_title=previous_owner.display_name,
        to_type="user",
        to_id=new_owner.id,
        to_title=new_owner.display_name,
        user_id=actor.id,
    ))
    await db.commit()

    project_name = project.name
    logger.info(f"Project {project_id} ownership transferred from {actor.id} to {new_owner.id}")

    await notify_best_effort(
        db,
        user_id=new_owner.id,
        type=NotificationType.TRANSFER,
        title="Projeto Transferido",
        message=f'Você agora é o proprietário do projeto "{project_name}"',
        ref_type="project",
        ref_id=project_id,
        priority=NotificationPriority.HIGH,
    )
    return await _get_project(db, project_id)


async def move_board(
    db: AsyncSession, board_id: str, target_project_id: str, actor: CurrentUser,
) -> Board:
    board = await get_entity_with_ancestry(db, "board", board_id)
    source_project = board.project
    if source_project.owner_id != actor.id:
        raise ForbiddenError("You must own the source project")

    target_project = await _get_project(db, target_project_id)
    if not target_project:
        raise NotFoundError("Target project not found")
    if not await user_has_project_access(db, actor.id, target_project.id):
        raise ForbiddenError("You must have access to the target project")
    if target_project.id == source_project.id:
        raise BadRequestError("Board is already in this project")

    await relocate(db, board, target_project)
    await log_transfer(db, TransferEntry(
        type=TransferType.BOARD_MOVE,
        entity_type="board",
        entity_id=board.id,
        entity_title=board.name,
        from_type="project",
        from_id=source_project.id,
        from_title=source_project.name,
        to_type="project",
        to_id=target_project.id,
        to_title=target_project.name,
        user_id=actor.id,
    ))
    await db.commit()
    logger.info(f"Board {board_id} moved from project {source_project.id} to {target_project.id}")

    stmt = select(Board).where(Board.id == board_id).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one()


async def move_card(
    db: AsyncSession,
    card_id: str,
    target_board_id: str,
    target_column_id: Optional[str],
    actor: CurrentUser,
) -> Card:
    """Move a card to the end of a column on another (or the same) board"""
    card = await _load_source_card(db, card_id, actor)
    source_board = card.board
    source_project = source_board.project
    source_column_id = card.column_id

    target_board, target_project, column = await _resolve_destination(
        db, actor, target_board_id, target_column_id,
    )

    siblings = await list_cards(db, column.id, exclude_id=card.id)
    allocation = allocate(siblings)
    await relocate(db, card, column, allocation.value)
    await persist_reorder(db, Card, allocation.affected, column.id)

    if source_column_id != column.id:
        remaining = await list_cards(db, source_column_id)
        await persist_reorder(db, Card, resequence(remaining), source_column_id)

    await log_transfer(db, TransferEntry(
        type=TransferType.CARD_MOVE,
        entity_type="card",
        entity_id=card.id,
        entity_title=card.title,
        from_type="board",
        from_id=source_board.id,
        from_title=_board_label(source_board, source_project),
        to_type="board",
        to_id=target_board.id,
        to_title=_board_label(target_board, target_project),
        user_id=actor.id,
    ))
    await db.commit()
    logger.info(f"Card {card_id} moved from board {source_board.id} to {target_board.id}")
    return await load_card(db, card_id)


async def clone_card(
    db: AsyncSession,
    card_id: str,
    target_board_id: str,
    target_column_id: Optional[str],
    actor: CurrentUser,
    copy_tags: bool = False,
) -> Card:
    """Copy a card to the end of a target column; the source is untouched"""
    card = await _load_source_card(db, card_id, actor)
    target_board, target_project, column = await _resolve_destination(
        db, actor, target_board_id, target_column_id,
    )

    clone = Card(
        title=f"{card.title}{CLONE_SUFFIX}",
        description=card.description,
        status=CardStatus.NEW,
        priority=card.priority,
        reporter_id=actor.id,
    )
    await append_card(db, clone, column)

    if copy_tags:
        tag_ids = (await db.execute(
            select(CardTag.tag_id).where(CardTag.card_id == card.id)
        )).scalars().all()
        for tag_id in tag_ids:
            db.add(CardTag(card_id=clone.id, tag_id=tag_id))

    await log_transfer(db, TransferEntry(
        type=TransferType.CARD_CLONE,
        entity_type="card",
        entity_id=clone.id,
        entity_title=clone.title,
        from_type="card",
        from_id=card.id,
        from_title=card.title,
        to_type="board",
        to_id=target_board.id,
        to_title=_board_label(target_board, target_project),
        user_id=actor.id,
    ))
    await db.commit()
    clone_id = clone.id
    logger.info(f"Card {card_id} cloned as {clone_id} into board {target_board.id}")
    return await load_card(db, clone_id)


# ============================================================
# READS
# ============================================================

async def transfer_history(
    db: AsyncSession, actor: CurrentUser, limit: int = 50, offset: int = 0,
) -> List[TransferLog]:
    return await history_for_user(db, actor.id, limit=limit, offset=offset)


async def entity_history(
    db: AsyncSession, entity_type: str, entity_id: str, actor: CurrentUser,
) -> List[TransferLog]:
    """Transfer rows of one entity; hidden unless the actor can access its project"""
    if entity_type not in ENTITY_TYPES:
        raise BadRequestError(f"Unknown entity type: {entity_type}")

    if entity_type == "project":
        project = await _get_project(db, entity_id)
        if not project:
            raise NotFoundError("Project not found")
        project_id = project.id
    else:
        entity = await get_entity_with_ancestry(db, entity_type, entity_id)
        project_id = entity.board.project_id if entity_type == "card" else entity.project_id
    if not await user_has_project_access(db, actor.id, project_id):
        raise NotFoundError(f"{entity_type.capitalize()} not found")
    return await history_for_entity(db, entity_type, entity_id)


async def transfer_targets(db: AsyncSession, actor: CurrentUser, entity_type: str) -> List[Dict[str, Any]]:
    """Destinations the actor may choose for an entity of `entity_type`"""
    if entity_type == "project":
        stmt = (
            select(User)
            .where(
                User.company_id == actor.company_id,
                User.id != actor.id,
                User.is_active.is_(True),
            )
            .order_by(User.display_name.asc())
            .limit(TARGET_USER_LIMIT)
        )
        users = (await db.execute(stmt)).scalars().all()
        return [{"id": u.id, "name": u.display_name, "email": u.email} for u in users]

    if entity_type == "board":
        projects = await list_accessible_projects(db, actor.id)
        return [{"id": p.id, "name": p.name} for p in projects]

    if entity_type == "card":
        boards = await list_accessible_boards(db, actor.id)
        targets = []
        for board in boards:
            columns = await list_columns(db, board.id)
            targets.append({
                "id": board.id,
                "name": board.name,
                "project_id": board.project_id,
                "columns": [{"id": c.id, "title": c.title, "position": c.position} for c in columns],
            })
        return targets

    raise BadRequestError(f"Unknown entity type: {entity_type}")
