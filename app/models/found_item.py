import uuid
from datetime import date, datetime, timezone
from typing import ClassVar
from sqlmodel import Field, SQLModel

from app.models.enums import ItemStatus, ItemType


class FoundItem(SQLModel, table=True):
    __tablename__ = "found_items"

    item_type: ClassVar[ItemType] = ItemType.FOUND

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)

    # Finder info
    poster_user_id: str = Field(index=True)
    poster_email: str
    poster_phone: str = Field(default="")

    # Item fields
    item_name: str
    description: str
    found_location: str
    image_url: str
    image_deletion_handle: str
    date_found: date
    time_found: str

    status: str = Field(default=ItemStatus.ACTIVE.value, index=True)  # active/resolved/removed

    @property
    def location(self) -> str:
        return self.found_location

    @property
    def occurred_date(self) -> date:
        return self.date_found
