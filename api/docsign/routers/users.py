import secrets
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select
from ..db import get_session
from ..models import User
from ..schemas import UserCreate
from ..auth import AccessContext, require_admin_access, require_user

router = APIRouter()

@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    session: Session = Depends(get_session),
    ctx=Depends(require_admin_access),
):
    email = payload.email.strip().lower()
    existing = session.exec(select(User).where(User.email == email)).first()
    if existing:
        raise HTTPException(status.HTTP_409_CONFLICT, "user email already exists")
    user = User(email=email, name=payload.name.strip(), access_token=secrets.token_urlsafe(32))
    session.add(user)
    session.commit()
    session.refresh(user)
    return user

@router.get("/me")
def current_user(
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    user = session.get(User, ctx.user_id)
    return {"id": user.id, "email": user.email, "name": user.name, "created_at": user.created_at}

@router.post("/{user_id}/access-token")
def regenerate_access_token(
    user_id: int,
    session: Session = Depends(get_session),
    ctx=Depends(require_admin_access),
):
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(404, "user not found")
    user.access_token = secrets.token_urlsafe(32)
    session.add(user)
    session.commit()
    session.refresh(user)
    return {"access_token": user.access_token}
