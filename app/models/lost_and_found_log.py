import uuid
from datetime import date, datetime, timezone
from sqlmodel import Field, SQLModel


class LostAndFoundLog(SQLModel, table=True):
    __tablename__ = "lost_and_found_logs"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    type: str = Field(index=True)  # "lost" or "found"

    # Copy of the posting, kept readable after the posting is deleted
    item_name: str
    description: str
    location: str
    image_url: str

    poster_user_id: str = Field(index=True)
    poster_email: str
    poster_phone: str = Field(default="")

    claimer_user_id: str = Field(index=True)
    claimer_email: str
    claimer_phone: str = Field(default="")

    occurred_date: date
    resolved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Points at a deleted posting; no foreign key
    item_id: uuid.UUID
