from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.core.session_auth import require_login
from app.dependencies import get_clock, get_db
from app.services.dashboard_service import build_dashboard

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("")
def dashboard(request: Request, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    require_login(request)
    return {
        "success": True,
        "data": build_dashboard(db, clock=clock),
        "timestamp": clock.now().strftime("%Y-%m-%d %H:%M:%S"),
    }


__all__ = ["router"]
