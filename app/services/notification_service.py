from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.clock import Clock, system_clock
from app.core.errors import NotFound
from app.database.session import atomic
from app.models.notification import Notification


def notify(
    db: Session,
    notification_type: str,
    message: str,
    *,
    product_id: Optional[int] = None,
    actor: Optional[str] = None,
    clock: Clock = system_clock,
) -> Notification:
    """Queue a notification on the caller's transaction; it commits or rolls
    back together with the change it describes."""
    notification = Notification(
        type=notification_type,
        message=message,
        read=False,
        product_id=product_id,
        actor=actor,
        created_at=clock.now(),
    )
    db.add(notification)
    return notification


def list_notifications(db: Session) -> list[Notification]:
    return list(
        db.execute(
            select(Notification).order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        .scalars()
        .all()
    )


def create_notification(
    db: Session,
    notification_type: str,
    message: str,
    product_id: Optional[int] = None,
    *,
    actor: Optional[str] = None,
    clock: Clock = system_clock,
) -> Notification:
    with atomic(db):
        notification = notify(
            db, notification_type, message, product_id=product_id, actor=actor, clock=clock
        )
    return notification


def mark_as_read(db: Session, notification_id: int) -> Notification:
    with atomic(db):
        notification = db.get(Notification, notification_id)
        if notification is None:
            raise NotFound("Notification not found.")
        notification.read = True
    return notification


def mark_all_as_read(db: Session) -> int:
    with atomic(db):
        result = db.execute(
            update(Notification).where(Notification.read.is_(False)).values(read=True)
        )
    return result.rowcount or 0


__all__ = [
    "create_notification",
    "list_notifications",
    "mark_all_as_read",
    "mark_as_read",
    "notify",
]
