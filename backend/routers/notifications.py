# routers/notifications.py — In-app notifications and due-date reminders
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import select, func, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from errors import NotFoundError
from models import Notification, NotificationPriority, utcnow
from responses import success_response
from services.notifications import generate_card_due_notifications

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


# --- Schemas ---

class NotificationOut(BaseModel):
    id: str
    type: str
    title: str
    message: str
    ref_type: Optional[str] = None
    ref_id: Optional[str] = None
    priority: str
    read_at: Optional[str] = None
    is_read: bool
    created_at: str


def _notif_out(n: Notification) -> dict:
    return NotificationOut(
        id=n.id, type=n.type.value if hasattr(n.type, "value") else str(n.type),
        title=n.title, message=n.message,
        ref_type=n.ref_type, ref_id=n.ref_id,
        priority=n.priority.value if hasattr(n.priority, "value") else str(n.priority),
        read_at=n.read_at.isoformat() if n.read_at else None,
        is_read=n.read_at is not None,
        created_at=n.created_at.isoformat(),
    ).model_dump()


async def _get_own_notification(db: AsyncSession, notification_id: str, user_id: str) -> Notification:
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    notif = result.scalar_one_or_none()
    if not notif:
        raise NotFoundError("Notification not found")
    return notif


# ============================================================
# LIST
# ============================================================

@router.get("")
async def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    """List notifications, generating today's due-date reminders first"""
    await generate_card_due_notifications(db, user.id)

    query = select(Notification).where(Notification.user_id == user.id)
    if unread_only:
        query = query.where(Notification.read_at.is_(None))
    query = query.order_by(Notification.created_at.desc()).offset(offset).limit(limit)
    result = await db.execute(query)
    return success_response([_notif_out(n) for n in result.scalars().all()])


# ============================================================
# COUNT
# ============================================================

@router.get("/count")
async def notification_count(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    unread = (await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user.id,
            Notification.read_at.is_(None),
        )
    )).scalar() or 0

    urgent = (await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user.id,
            Notification.read_at.is_(None),
            Notification.priority == NotificationPriority.URGENT,
        )
    )).scalar() or 0

    return success_response({"unread": unread, "urgent": urgent})


# ============================================================
# MARK READ
# ============================================================

@router.post("/read-all")
async def mark_all_read(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.read_at.is_(None))
        .values(read_at=utcnow())
    )
    await db.commit()
    return success_response({"marked": result.rowcount or 0})


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    notif = await _get_own_notification(db, notification_id, user.id)
    if notif.read_at is None:
        notif.read_at = utcnow()
        await db.commit()
    return success_response(_notif_out(notif), "Notification marked as read")


# ============================================================
# DELETE
# ============================================================

@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    notif = await _get_own_notification(db, notification_id, user.id)
    await db.delete(notif)
    await db.commit()
    return success_response(message="Notification deleted")


@router.delete("")
async def clear_read_notifications(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    result = await db.execute(
        delete(Notification).where(
            Notification.user_id == user.id,
            Notification.read_at.isnot(None),
        )
    )
    await db.commit()
    return success_response({"deleted": result.rowcount or 0})
