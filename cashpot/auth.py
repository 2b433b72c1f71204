import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cashpot.crud import Repository, to_dict
from cashpot.db import get_db
from cashpot.models import User
from cashpot.resources import prepare_user
from cashpot.responses import ok
from cashpot.schemas import LoginRequest, RegisterRequest
from cashpot.security import create_access_token, decode_access_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

USER_HIDDEN = ("password_hash",)


def _token_for(request: Request, user: User) -> str:
    return create_access_token(
        {"sub": str(user.id), "username": user.username, "role": user.role},
        settings=request.app.state.settings,
    )


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="No token provided")
    payload = decode_access_token(authorization.split(" ", 1)[1], settings=request.app.state.settings)
    subject = str(payload.get("sub", "")) if payload else ""
    user = db.get(User, int(subject)) if subject.isdigit() else None
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user


@router.post("/login")
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)) -> dict:
    user = db.scalars(
        select(User).where(or_(User.username == payload.username, User.email == payload.username))
    ).first()
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.info("failed login for %s", payload.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")
    logger.info("login user_id=%s", user.id)
    return ok({"token": _token_for(request, user), "user": to_dict(user, hidden=USER_HIDDEN)})


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, request: Request, db: Session = Depends(get_db)) -> dict:
    existing = db.scalars(
        select(User).where(or_(User.username == payload.username, User.email == payload.email))
    ).first()
    if existing is not None:
        raise HTTPException(status_code=400, detail="User already exists")
    try:
        user = Repository(db, User, prepare=prepare_user).create(payload.model_dump())
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail="User already exists") from exc
    return ok({"token": _token_for(request, user), "user": to_dict(user, hidden=USER_HIDDEN)})


@router.get("/verify")
def verify(user: User = Depends(get_current_user)) -> dict:
    return ok({"user": to_dict(user, hidden=USER_HIDDEN)})


@router.post("/logout")
def logout() -> dict:
    # tokens are stateless; the client drops its copy
    return ok({"success": True})
