"""
Who hears about what.

New postings are broadcast to everyone but the poster; a claim is sent to
the poster alone, carrying the claimer's contact details. Delivery is best
effort: failures are logged here and never reach the lifecycle engine's
caller.
"""

import logging

from app.models.enums import ItemType
from app.schemas.posting import Identity
from app.services.contracts import NotificationGateway

logger = logging.getLogger(__name__)


def new_posting_message(item_type: ItemType, item_id, item_name: str, location: str):
    if ItemType(item_type) is ItemType.LOST:
        title = "Item Lost"
        body = f"Someone lost {item_name} at {location}"
    else:
        title = "Item Found"
        body = f"Someone found {item_name} at {location}"

    payload = {"type": ItemType(item_type).value, "itemId": str(item_id)}
    return title, body, payload


def claim_message(item_type: ItemType, item_id, item_name: str, claimer: Identity):
    if ItemType(item_type) is ItemType.LOST:
        title = "Your Lost Item Was Found!"
        body = f"{claimer.email} has found your {item_name}. Contact: {claimer.phone}"
        kind = "lost_found"
    else:
        title = "Someone Claimed Your Found Item!"
        body = f"{claimer.email} claims the {item_name} you found. Contact: {claimer.phone}"
        kind = "item_claimed"

    payload = {
        "type": kind,
        "itemId": str(item_id),
        "claimerEmail": claimer.email,
        "claimerPhone": claimer.phone,
    }
    return title, body, payload


class NotificationPolicy:
    def __init__(self, gateway: NotificationGateway):
        self.gateway = gateway

    async def announce_posting(self, item_type: ItemType, item_id, item_name: str, location: str, poster: Identity) -> bool:
        title, body, payload = new_posting_message(item_type, item_id, item_name, location)
        try:
            await self.gateway.send_to_all_except(poster.user_id, title, body, payload)
        except Exception:
            logger.exception("Broadcast for %s item %s failed", ItemType(item_type).value, item_id)
            return False
        return True

    async def notify_poster_of_claim(self, item_type: ItemType, item_id, item_name: str, poster_user_id: str, claimer: Identity) -> bool:
        title, body, payload = claim_message(item_type, item_id, item_name, claimer)
        try:
            await self.gateway.send_to_user(poster_user_id, title, body, payload)
        except Exception:
            logger.exception("Claim notice for item %s to user %s failed", item_id, poster_user_id)
            return False
        return True
