# services/notifications.py — Notification creation and due-date generation
"""
Notifications are side effects: they are written only after the operation
that caused them has committed, and a failure to write one never undoes that
operation.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models import Card, Notification, NotificationPriority, NotificationType

logger = logging.getLogger("kanban-hub.notifications")


async def create_notification(
    db: AsyncSession,
    user_id: str,
    type: NotificationType,
    title: str,
    message: str,
    ref_type: Optional[str] = None,
    ref_id: Optional[str] = None,
    priority: NotificationPriority = NotificationPriority.NORMAL,
) -> Notification:
    notif = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        ref_type=ref_type,
        ref_id=ref_id,
        priority=priority,
    )
    db.add(notif)
    await db.commit()
    await db.refresh(notif)
    return notif


async def notify_best_effort(db: AsyncSession, **kwargs) -> Optional[Notification]:
    """Create a notification, logging instead of raising on storage errors"""
    try:
        return await create_notification(db, **kwargs)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning(f"Notification for user {kwargs.get('user_id')} not delivered: {e}")
        return None


async def notify_assignment(db: AsyncSession, assignee_id: str, actor_name: str, card: Card):
    return await notify_best_effort(
        db,
        user_id=assignee_id,
        type=NotificationType.ASSIGNED,
        title="Card Atribuído",
        message=f'{actor_name} atribuiu "{card.title}" a você',
        ref_type="card",
        ref_id=card.id,
    )


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


async def generate_card_due_notifications(
    db: AsyncSession, user_id: str, today: Optional[date] = None,
) -> int:
    """Emit overdue / due-today / due-tomorrow notifications for assigned cards.

    At most one notification per card per day: a card that already produced a
    notification for this user today is skipped.
    """
    today = today or datetime.now(timezone.utc).date()
    tomorrow = today + timedelta(days=1)

    cards = (await db.execute(
        select(Card).where(Card.assigned_user_id == user_id, Card.due_date.isnot(None))
    )).scalars().all()
    if not cards:
        return 0

    notified_today = set((await db.execute(
        select(Notification.ref_id).where(
            Notification.user_id == user_id,
            Notification.ref_type == "card",
            Notification.created_at >= _start_of_day(today),
        )
    )).scalars().all())

    created = 0
    for card in cards:
        if card.id in notified_today:
            continue
        due = card.due_date.date()
        if due < today:
            kind, title, message, priority = (
                NotificationType.CARD_OVERDUE, "Card Atrasado",
                f'"{card.title}" está atrasado', NotificationPriority.URGENT,
            )
        elif due == today:
            kind, title, message, priority = (
                NotificationType.CARD_DUE_TODAY, "Card Vence Hoje",
                f'"{card.title}" vence hoje', NotificationPriority.HIGH,
            )
        elif due == tomorrow:
            kind, title, message, priority = (
                NotificationType.CARD_DUE_TOMORROW, "Card Vence Amanhã",
                f'"{card.title}" vence amanhã', NotificationPriority.NORMAL,
            )
        else:
            continue
        db.add(Notification(
            user_id=user_id, type=kind, title=title, message=message,
            ref_type="card", ref_id=card.id, priority=priority,
        ))
        created += 1

    if created:
        await db.commit()
        logger.info(f"Generated {created} due-date notifications for user {user_id}")
    return created
