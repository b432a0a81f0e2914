from typing import Optional
from fastapi import APIRouter, HTTPException
from fastapi.params import Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.db.db import get_session
from app.utils.auth_helper import get_current_user_required, get_db_user


router = APIRouter()


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=80)
    phone: Optional[str] = Field(default=None, max_length=20)


class PushTokenRequest(BaseModel):
    token: str = Field(min_length=1)


@router.get("/me")
async def get_my_profile(
    session: Session = Depends(get_session),
    current_user=Depends(get_current_user_required),
):
    return get_db_user(session, current_user)


@router.patch("/me")
async def update_my_profile(
    updates: ProfileUpdate,
    session: Session = Depends(get_session),
    current_user=Depends(get_current_user_required),
):
    user = get_db_user(session, current_user)

    # past postings keep the contact details they were created with
    for field, value in updates.model_dump(exclude_unset=True).items():
        if value is None:
            raise HTTPException(status_code=400, detail=f"Field '{field}' cannot be empty")
        setattr(user, field, value.strip())

    session.add(user)
    session.commit()
    session.refresh(user)

    return user


@router.put("/push-token")
async def register_push_token(
    payload: PushTokenRequest,
    session: Session = Depends(get_session),
    current_user=Depends(get_current_user_required),
):
    user = get_db_user(session, current_user)

    if not payload.token.startswith(("ExponentPushToken[", "ExpoPushToken[")):
        raise HTTPException(status_code=400, detail="Not an Expo push token")

    user.push_token = payload.token

    session.add(user)
    session.commit()

    return True


@router.delete("/push-token")
async def clear_push_token(
    session: Session = Depends(get_session),
    current_user=Depends(get_current_user_required),
):
    user = get_db_user(session, current_user)

    user.push_token = None

    session.add(user)
    session.commit()

    return True
