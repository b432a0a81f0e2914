import asyncio
import threading
import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from app.models.enums import Collection, ItemStatus
from app.models.found_item import FoundItem
from app.models.lost_and_found_log import LostAndFoundLog
from app.models.lost_item import LostItem
from app.services.repository import ItemRepository

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def found_item(name="Blue Umbrella", minutes=0, status=ItemStatus.ACTIVE.value, poster="user-alice"):
    return FoundItem(
        poster_user_id=poster,
        poster_email=f"{poster}@campus.edu",
        item_name=name,
        description="Left on a reading desk",
        found_location="Library",
        image_url="https://cdn.test/a.webp",
        image_deletion_handle="a.webp",
        date_found=date(2026, 9, 30),
        time_found="Morning",
        created_at=NOW + timedelta(minutes=minutes),
        status=status,
    )


def claim_log(poster, claimer, minutes=0):
    return LostAndFoundLog(
        type="found",
        item_name="Keys",
        description="Three keys on a red ring",
        location="Canteen",
        image_url="https://cdn.test/k.webp",
        poster_user_id=poster,
        poster_email=f"{poster}@campus.edu",
        claimer_user_id=claimer,
        claimer_email=f"{claimer}@campus.edu",
        occurred_date=date(2026, 9, 29),
        resolved_at=NOW + timedelta(minutes=minutes),
        item_id=uuid.uuid4(),
    )


def test_active_feed_skips_resolved_and_removed(repository):
    active_id = repository.create(Collection.FOUND_ITEMS, found_item("Active"))
    repository.create(Collection.FOUND_ITEMS, found_item("Resolved", minutes=1, status=ItemStatus.RESOLVED.value))
    repository.create(Collection.FOUND_ITEMS, found_item("Removed", minutes=2, status=ItemStatus.REMOVED.value))

    assert [item.id for item in repository.list_active(Collection.FOUND_ITEMS)] == [active_id]


def test_active_feed_is_newest_first(repository):
    older = repository.create(Collection.FOUND_ITEMS, found_item("Older", minutes=0))
    newer = repository.create(Collection.FOUND_ITEMS, found_item("Newer", minutes=5))

    assert [item.id for item in repository.list_active(Collection.FOUND_ITEMS)] == [newer, older]


def test_delete_missing_id_is_a_no_op(repository):
    repository.delete(Collection.LOST_ITEMS, uuid.uuid4())
    repository.delete(Collection.LOST_ITEMS, "not-a-uuid")


def test_get_accepts_string_ids(repository):
    item_id = repository.create(Collection.FOUND_ITEMS, found_item())

    assert repository.get(Collection.FOUND_ITEMS, str(item_id)).item_name == "Blue Umbrella"
    assert repository.get(Collection.FOUND_ITEMS, "garbage") is None
    assert not repository.exists(Collection.LOST_ITEMS, item_id)


def test_create_checks_record_type(repository):
    with pytest.raises(TypeError):
        repository.create(Collection.LOST_ITEMS, found_item())


def test_logs_have_no_active_feed(repository):
    with pytest.raises(ValueError):
        repository.list_active(Collection.LOGS)


def test_logs_for_user_cover_both_roles(repository):
    as_poster = repository.create(Collection.LOGS, claim_log("user-alice", "user-bob", minutes=0))
    as_claimer = repository.create(Collection.LOGS, claim_log("user-carol", "user-alice", minutes=10))
    repository.create(Collection.LOGS, claim_log("user-bob", "user-carol", minutes=20))

    logs = repository.list_logs_for_user("user-alice")

    assert [log.id for log in logs] == [as_claimer, as_poster]


def test_live_feed_follows_creates_and_deletes(repository):
    existing = repository.create(Collection.FOUND_ITEMS, found_item("Existing"))

    async def scenario():
        seen = []
        async with repository.subscribe(Collection.FOUND_ITEMS) as feed:
            seen.append(await asyncio.wait_for(feed.__anext__(), 1))

            added = repository.create(Collection.FOUND_ITEMS, found_item("Added", minutes=1))
            seen.append(await asyncio.wait_for(feed.__anext__(), 1))

            repository.delete(Collection.FOUND_ITEMS, existing)
            seen.append(await asyncio.wait_for(feed.__anext__(), 1))

            # other collections do not wake this feed
            repository.create(Collection.LOST_ITEMS, LostItem(
                poster_user_id="user-bob",
                poster_email="bob@campus.edu",
                item_name="Wallet",
                description="Brown",
                last_known_location="Gym",
                image_url="https://cdn.test/w.webp",
                image_deletion_handle="w.webp",
                date_lost=date(2026, 9, 30),
                time_lost="Evening",
            ))
        return added, seen, feed

    added, seen, feed = asyncio.run(scenario())

    assert [[item.id for item in snapshot] for snapshot in seen] == [
        [existing],
        [added, existing],
        [added],
    ]
    assert feed.closed


def test_closed_feed_stops_iterating(repository):
    async def scenario():
        feed = repository.subscribe(Collection.LOST_ITEMS)
        feed.close()
        return [snapshot async for snapshot in feed]

    # closed before the first read
    assert asyncio.run(scenario()) == []


def test_closed_feed_is_unregistered(repository):
    async def scenario():
        feed = repository.subscribe(Collection.FOUND_ITEMS)
        feed.close()
        repository.create(Collection.FOUND_ITEMS, found_item())
        return repository._subscriptions[Collection.FOUND_ITEMS]

    assert asyncio.run(scenario()) == []


class RacingRepository(ItemRepository):
    """Commits a create from another thread right after its first feed read."""

    def __init__(self, engine):
        super().__init__(engine)
        self.raced = False
        self.reads = 0

    def list_active(self, collection):
        self.reads += 1
        snapshot = super().list_active(collection)
        if not self.raced:
            self.raced = True
            writer = threading.Thread(
                target=self.create, args=(Collection.FOUND_ITEMS, found_item("Raced", minutes=1))
            )
            writer.start()
            writer.join()
        return snapshot


def test_feed_catches_up_with_a_write_racing_its_read(db_engine):
    repository = RacingRepository(db_engine)

    async def scenario():
        async with repository.subscribe(Collection.FOUND_ITEMS) as feed:
            stale = await asyncio.wait_for(feed.__anext__(), 1)
            latest = await asyncio.wait_for(feed.__anext__(), 1)
        return stale, latest

    stale, latest = asyncio.run(scenario())

    assert stale == []
    assert [item.item_name for item in latest] == ["Raced"]
    assert [item.item_name for item in repository.list_active(Collection.FOUND_ITEMS)] == ["Raced"]


def test_unread_changes_collapse_into_one_read(repository):
    async def scenario():
        async with repository.subscribe(Collection.FOUND_ITEMS) as feed:
            await asyncio.wait_for(feed.__anext__(), 1)

            for minutes in range(50):
                repository.create(Collection.FOUND_ITEMS, found_item(f"Item {minutes}", minutes=minutes))
            # let the change flags land
            await asyncio.sleep(0)

            snapshot = await asyncio.wait_for(feed.__anext__(), 1)
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(feed.__anext__(), 0.1)
            return snapshot

    snapshot = asyncio.run(scenario())

    assert len(snapshot) == 50
    assert snapshot[0].item_name == "Item 49"


def test_subscribe_does_not_query(db_engine):
    repository = RacingRepository(db_engine)
    repository.raced = True

    async def scenario():
        feed = repository.subscribe(Collection.LOST_ITEMS)
        reads_before_await = repository.reads
        first = await asyncio.wait_for(feed.__anext__(), 1)
        feed.close()
        return reads_before_await, first

    reads_before_await, first = asyncio.run(scenario())

    assert reads_before_await == 0
    assert first == []
    assert repository.reads == 1
