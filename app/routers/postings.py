import asyncio
import contextlib
import uuid
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from sqlmodel import Session

from app.db.db import get_session
from app.dependencies import get_lifecycle_engine, get_repository
from app.models.enums import ItemType, collection_for
from app.models.found_item import FoundItem
from app.models.lost_item import LostItem
from app.services.lifecycle import LifecycleEngine
from app.services.repository import ItemRepository
from app.utils.auth_helper import decode_access_token, get_current_user_required, get_db_user, identity_for
from app.utils.form_validator import check_upload_size, parse_form_date

MODELS = {ItemType.LOST: LostItem, ItemType.FOUND: FoundItem}


def serialize(items: list) -> list:
    return [item.model_dump(mode="json") for item in items]


def build_router(item_type: ItemType) -> APIRouter:
    """Routes for one side of lost & found; ``/lost`` and ``/found`` mirror each other."""
    router = APIRouter()
    model = MODELS[item_type]
    collection = collection_for(item_type)

    @router.post("/")
    async def create_posting(
        item_name: str = Form(...),
        description: str = Form(...),
        location: str = Form(...),
        date: str = Form(...),
        time_label: str = Form(...),
        image: UploadFile = File(...),
        session: Session = Depends(get_session),
        current_user=Depends(get_current_user_required),
        engine: LifecycleEngine = Depends(get_lifecycle_engine),
    ):
        user = get_db_user(session, current_user)

        raw_bytes = await image.read()
        check_upload_size(raw_bytes)

        item_id = await engine.create(
            item_type,
            {
                "item_name": item_name,
                "description": description,
                "location": location,
                "image": {"filename": image.filename or "photo.jpg", "content": raw_bytes},
                "occurred_date": parse_form_date(date),
                "occurred_time_label": time_label,
            },
            identity_for(user),
        )

        return {"id": str(item_id)}

    @router.get("/")
    async def get_active_postings(
        current_user=Depends(get_current_user_required),
        repository: ItemRepository = Depends(get_repository),
    ):
        items = await asyncio.to_thread(repository.list_active, collection)
        return {"items": serialize(items)}

    @router.websocket("/feed")
    async def live_feed(
        websocket: WebSocket,
        token: str = Query(...),
        repository: ItemRepository = Depends(get_repository),
    ):
        if decode_access_token(token) is None:
            await websocket.close(code=1008)
            return

        await websocket.accept()
        subscription = repository.subscribe(collection)

        async def close_on_disconnect():
            try:
                while True:
                    message = await websocket.receive()
                    if message["type"] == "websocket.disconnect":
                        break
            finally:
                subscription.close()

        watcher = asyncio.create_task(close_on_disconnect())
        try:
            async for snapshot in subscription:
                await websocket.send_json({"items": serialize(snapshot)})
        except WebSocketDisconnect:
            pass
        finally:
            subscription.close()
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError, WebSocketDisconnect):
                await watcher

    @router.post("/{item_id}/claim")
    async def claim_posting(
        item_id: uuid.UUID,
        snapshot: dict,
        session: Session = Depends(get_session),
        current_user=Depends(get_current_user_required),
        engine: LifecycleEngine = Depends(get_lifecycle_engine),
    ):
        user = get_db_user(session, current_user)

        # the item as the client last saw it
        try:
            observed = model.model_validate(snapshot)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=e.errors(include_url=False, include_input=False))

        log_id = await engine.claim(item_id, identity_for(user), observed)

        return {"ok": True, "log_id": str(log_id)}

    @router.delete("/{item_id}")
    async def remove_posting(
        item_id: uuid.UUID,
        session: Session = Depends(get_session),
        current_user=Depends(get_current_user_required),
        engine: LifecycleEngine = Depends(get_lifecycle_engine),
    ):
        user = get_db_user(session, current_user)

        item = session.get(model, item_id)

        # already gone
        if not item:
            return True

        # ownership check
        if item.poster_user_id != user.public_id:
            raise HTTPException(status_code=403, detail="Unauthorized to remove this item")

        await engine.remove(item_type, item_id, item.image_deletion_handle)

        return True

    return router
