from datetime import date, datetime
from fastapi import HTTPException


MAX_UPLOAD_SIZE_MB = 5
MAX_UPLOAD_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024


def parse_form_date(value: str) -> date:
    """Accept a plain ISO date or a full ISO timestamp from the client."""
    value = (value or "").strip()

    try:
        return date.fromisoformat(value)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        raise HTTPException(status_code=400, detail="Date not parseable")


def check_upload_size(raw_bytes: bytes):
    if len(raw_bytes) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail=f"Image exceeds {MAX_UPLOAD_SIZE_MB}MB limit")
