from fastapi import APIRouter, Request
from pydantic import BaseModel

from app.core import session_auth

router = APIRouter(tags=["Auth"])


class LoginRequest(BaseModel):
    username: str
    password: str


@router.post("/login")
def login(request: Request, payload: LoginRequest):
    user = session_auth.login(request, payload.username, payload.password)
    return {"message": "Logged in.", "user": user}


@router.post("/logout")
def logout(request: Request):
    session_auth.logout(request)
    return {"message": "Logged out."}


__all__ = ["router"]
