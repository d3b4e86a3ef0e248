from typing import Optional
from fastapi import Depends, Header, HTTPException, Query, status
from pydantic import BaseModel
from sqlmodel import Session, select

from .config import ADMIN_ACCESS_TOKEN
from .db import get_session
from .models import User


class AccessContext(BaseModel):
    role: str
    user_id: Optional[int] = None

    @property
    def actor(self) -> str:
        return f"user:{self.user_id}" if self.user_id else "admin"


def resolve_access_context(
    x_access_token: Optional[str] = Header(default=None, alias="X-Access-Token"),
    access_token: Optional[str] = Query(default=None),
    session: Session = Depends(get_session),
) -> AccessContext:
    candidate = x_access_token or access_token
    if not candidate:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing access token")
    if ADMIN_ACCESS_TOKEN and candidate == ADMIN_ACCESS_TOKEN:
        return AccessContext(role="admin")
    user = session.exec(select(User).where(User.access_token == candidate)).first()
    if user:
        return AccessContext(role="user", user_id=user.id)
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid access token")


def require_admin_access(context: AccessContext = Depends(resolve_access_context)) -> AccessContext:
    if context.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return context


def require_user(context: AccessContext = Depends(resolve_access_context)) -> AccessContext:
    if context.role != "user" or context.user_id is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="A user access token is required")
    return context
