import asyncio
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.db.db import get_session
from app.dependencies import get_repository
from app.services.repository import ItemRepository
from app.utils.auth_helper import get_current_user_required, get_db_user


router = APIRouter()


@router.get("/mine")
async def get_my_logs(
    session: Session = Depends(get_session),
    current_user=Depends(get_current_user_required),
    repository: ItemRepository = Depends(get_repository),
):
    """Claims the caller took part in, as poster or as claimer."""
    user = get_db_user(session, current_user)

    logs = await asyncio.to_thread(repository.list_logs_for_user, user.public_id)

    entries = []
    for log in logs:
        data = log.model_dump(mode="json")
        # who to get in touch with
        is_poster = log.poster_user_id == user.public_id
        data["role"] = "poster" if is_poster else "claimer"
        data["contact"] = {
            "email": log.claimer_email if is_poster else log.poster_email,
            "phone": log.claimer_phone if is_poster else log.poster_phone,
        }
        entries.append(data)

    return {"logs": entries}
