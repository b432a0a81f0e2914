import os
from typing import Optional
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from sqlmodel import Session, select

from app.models.user import User
from app.schemas.posting import Identity

ALGORITHM = "HS256"

bearer_scheme_required = HTTPBearer(auto_error=True)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, os.getenv("JWT_SECRET"), algorithms=[ALGORITHM])
    except JWTError:
        return None


def get_current_user_required(token: HTTPAuthorizationCredentials = Depends(bearer_scheme_required)):
    payload = decode_access_token(token.credentials)
    if payload is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return payload


def get_db_user(session: Session, current_user):
    user = session.exec(
        select(User).where(User.public_id == current_user["sub"])
    ).first()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return user


def identity_for(user: User) -> Identity:
    return Identity(user_id=user.public_id, email=user.email, phone=user.phone or "")
