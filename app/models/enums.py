from enum import Enum


class ItemType(str, Enum):
    LOST = "lost"
    FOUND = "found"


class ItemStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"  # claimed by a second user
    REMOVED = "removed"  # withdrawn by the poster


class Collection(str, Enum):
    LOST_ITEMS = "lostItems"
    FOUND_ITEMS = "foundItems"
    LOGS = "lostAndFoundLogs"


def collection_for(item_type: ItemType) -> Collection:
    if ItemType(item_type) is ItemType.LOST:
        return Collection.LOST_ITEMS
    return Collection.FOUND_ITEMS
