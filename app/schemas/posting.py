from dataclasses import dataclass
from datetime import date
from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class Identity:
    """Who is acting. Passed into every lifecycle operation."""

    user_id: str
    email: str
    phone: str = ""


class ImageRef(BaseModel):
    """A local image waiting to be uploaded."""

    filename: str = Field(min_length=1)
    content: bytes = Field(min_length=1)


class PostingForm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    item_name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    location: str = Field(min_length=1)
    image: ImageRef
    occurred_date: date
    occurred_time_label: str = Field(min_length=1)
