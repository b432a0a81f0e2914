from app.models.enums import ItemType
from app.routers.postings import build_router

router = build_router(ItemType.LOST)
