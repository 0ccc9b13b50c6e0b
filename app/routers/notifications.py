from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.core.security import Principal
from app.dependencies import get_clock, get_db, require_auth
from app.schemas.notification import NotificationCreate, NotificationRead
from app.services import notification_service

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=list[NotificationRead])
def list_notifications(db: Session = Depends(get_db)):
    return notification_service.list_notifications(db)


@router.post("", response_model=NotificationRead, status_code=201)
def create_notification(
    payload: NotificationCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    principal: Principal = Depends(require_auth),
):
    return notification_service.create_notification(
        db,
        payload.type,
        payload.message,
        payload.product_id,
        actor=principal.actor,
        clock=clock,
    )


@router.patch("/mark-all-read")
def mark_all_read(db: Session = Depends(get_db), _auth=Depends(require_auth)):
    updated = notification_service.mark_all_as_read(db)
    return {"message": "All notifications marked as read.", "updated": updated}


@router.patch("/{notification_id}/read", response_model=NotificationRead)
def mark_read(notification_id: int, db: Session = Depends(get_db), _auth=Depends(require_auth)):
    return notification_service.mark_as_read(db, notification_id)


__all__ = ["router"]
