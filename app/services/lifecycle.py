"""
Lost & found lifecycle: posting, claiming and withdrawing items.

Each operation runs its steps strictly in order and never compensates for
an earlier step when a later one fails:

- ``create``: validate, upload image, save posting, broadcast.
  A failed save leaves the uploaded image orphaned in the object store.
- ``claim``: write the claim log, tell the poster, delete the posting.
  A failed delete leaves a posting that is logged as claimed but still
  listed until someone removes it.
- ``remove``: drop the image (best effort), delete the posting. No log.

Notification failures never fail an operation.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from app.models.enums import Collection, ItemStatus, ItemType, collection_for
from app.models.found_item import FoundItem
from app.models.lost_and_found_log import LostAndFoundLog
from app.models.lost_item import LostItem
from app.schemas.posting import Identity, PostingForm
from app.services.contracts import NotificationGateway, ObjectStore
from app.services.notification_policy import NotificationPolicy
from app.services.repository import ItemRepository
from app.utils.app_error import ItemNotFoundError, SelfClaimError, ValidationError

logger = logging.getLogger(__name__)

Posting = Union[LostItem, FoundItem]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_posting(data: Union[PostingForm, Mapping[str, Any]]) -> PostingForm:
    if isinstance(data, PostingForm):
        data = data.model_dump()
    try:
        return PostingForm.model_validate(data)
    except PydanticValidationError as e:
        # drop "input", it can hold raw image bytes
        errors = [
            {key: value for key, value in err.items() if key not in ("input", "ctx")}
            for err in e.errors(include_url=False)
        ]
        fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in errors)
        raise ValidationError(f"Missing or invalid fields: {fields}", errors=errors) from e


def validate_identity(identity: Identity, role: str):
    if not identity or not (identity.user_id or "").strip() or not (identity.email or "").strip():
        raise ValidationError(f"{role} must have a user id and an email")


def build_posting(item_type: ItemType, form: PostingForm, poster: Identity, image_url: str, deletion_handle: str, created_at: datetime) -> Posting:
    common = dict(
        poster_user_id=poster.user_id,
        poster_email=poster.email,
        poster_phone=poster.phone or "",
        item_name=form.item_name,
        description=form.description,
        image_url=image_url,
        image_deletion_handle=deletion_handle,
        created_at=created_at,
        status=ItemStatus.ACTIVE.value,
    )

    if item_type is ItemType.LOST:
        return LostItem(
            last_known_location=form.location,
            date_lost=form.occurred_date,
            time_lost=form.occurred_time_label,
            **common,
        )

    return FoundItem(
        found_location=form.location,
        date_found=form.occurred_date,
        time_found=form.occurred_time_label,
        **common,
    )


def build_log(item_id: uuid.UUID, snapshot: Posting, claimer: Identity, resolved_at: datetime) -> LostAndFoundLog:
    return LostAndFoundLog(
        type=snapshot.item_type.value,
        item_name=snapshot.item_name,
        description=snapshot.description,
        location=snapshot.location,
        image_url=snapshot.image_url,
        poster_user_id=snapshot.poster_user_id,
        poster_email=snapshot.poster_email,
        poster_phone=snapshot.poster_phone,
        claimer_user_id=claimer.user_id,
        claimer_email=claimer.email,
        claimer_phone=claimer.phone or "",
        occurred_date=snapshot.occurred_date,
        resolved_at=resolved_at,
        item_id=item_id,
    )


class LifecycleEngine:
    def __init__(
        self,
        repository: ItemRepository,
        object_store: ObjectStore,
        gateway: NotificationGateway,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.object_store = object_store
        self.notifications = NotificationPolicy(gateway)
        self.clock = clock

    async def create(self, item_type: ItemType, data: Union[PostingForm, Mapping[str, Any]], poster: Identity) -> uuid.UUID:
        item_type = ItemType(item_type)

        form = validate_posting(data)
        validate_identity(poster, "Poster")

        image_url, deletion_handle = await self.object_store.upload(form.image)

        posting = build_posting(item_type, form, poster, image_url, deletion_handle, self.clock())
        item_id = await asyncio.to_thread(self.repository.create, collection_for(item_type), posting)
        logger.info("User %s posted %s item %s (%s)", poster.user_id, item_type.value, item_id, form.item_name)

        await self.notifications.announce_posting(item_type, item_id, form.item_name, form.location, poster)

        return item_id

    async def claim(self, item_id: Union[str, uuid.UUID], claimer: Identity, snapshot: Posting) -> uuid.UUID:
        """Resolve a posting on behalf of ``claimer``.

        The log is built from ``snapshot`` as the caller last saw it; the
        posting is only checked for existence, not re-read.
        """
        if claimer.user_id == snapshot.poster_user_id:
            raise SelfClaimError("You cannot claim your own item")
        validate_identity(claimer, "Claimer")

        item_type = snapshot.item_type
        collection = collection_for(item_type)

        try:
            item_id = item_id if isinstance(item_id, uuid.UUID) else uuid.UUID(str(item_id))
        except ValueError:
            raise ItemNotFoundError("Item not found")

        if not await asyncio.to_thread(self.repository.exists, collection, item_id):
            raise ItemNotFoundError("Item not found")

        log = build_log(item_id, snapshot, claimer, self.clock())
        log_id = await asyncio.to_thread(self.repository.create, Collection.LOGS, log)
        logger.info("User %s claimed %s item %s, log %s", claimer.user_id, item_type.value, item_id, log_id)

        await self.notifications.notify_poster_of_claim(
            item_type, item_id, snapshot.item_name, snapshot.poster_user_id, claimer
        )

        await asyncio.to_thread(self.repository.delete, collection, item_id)

        return log_id

    async def remove(self, item_type: ItemType, item_id: Union[str, uuid.UUID], deletion_handle: Optional[str] = None) -> None:
        item_type = ItemType(item_type)

        if deletion_handle:
            try:
                await self.object_store.delete(deletion_handle)
            except Exception:
                logger.warning("Could not delete image %s for item %s", deletion_handle, item_id, exc_info=True)

        await asyncio.to_thread(self.repository.delete, collection_for(item_type), item_id)
        logger.info("Removed %s item %s", item_type.value, item_id)
