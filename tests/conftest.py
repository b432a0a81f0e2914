import os

os.environ.setdefault("LOG_DIR", "")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, create_engine  # noqa: E402

from app.db.db import create_db_and_tables  # noqa: E402
from app.models.user import User  # noqa: E402
from app.schemas.posting import Identity  # noqa: E402
from app.services.lifecycle import LifecycleEngine  # noqa: E402
from app.services.repository import ItemRepository  # noqa: E402
from app.utils.app_error import UploadError  # noqa: E402


ALICE = Identity(user_id="user-alice", email="alice@campus.edu", phone="555-0100")
BOB = Identity(user_id="user-bob", email="bob@campus.edu", phone="555-0199")


class FakeObjectStore:
    def __init__(self):
        self.uploads = []
        self.deleted = []
        self.fail_upload = False
        self.fail_delete = False

    async def upload(self, image):
        if self.fail_upload:
            raise UploadError("Image upload failed")
        handle = f"lost-and-found/{len(self.uploads)}-{image.filename}"
        self.uploads.append(image)
        return f"https://cdn.test/{handle}", handle

    async def delete(self, deletion_handle):
        if self.fail_delete:
            raise RuntimeError("object store unavailable")
        self.deleted.append(deletion_handle)


class FakeGateway:
    def __init__(self):
        self.broadcasts = []
        self.direct = []
        self.fail = False

    async def send_to_all_except(self, excluded_user_id, title, body, payload):
        if self.fail:
            raise RuntimeError("push provider unavailable")
        self.broadcasts.append({"excluded": excluded_user_id, "title": title, "body": body, "payload": payload})

    async def send_to_user(self, user_id, title, body, payload):
        if self.fail:
            raise RuntimeError("push provider unavailable")
        self.direct.append({"user_id": user_id, "title": title, "body": body, "payload": payload})


class StepClock:
    """Each call is one second after the previous one."""

    def __init__(self, start=datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        self.current = self.current + timedelta(seconds=1)
        return self.current


def posting_data(**overrides):
    data = {
        "item_name": "Blue Umbrella",
        "description": "Compact umbrella with a wooden handle",
        "location": "Library",
        "image": {"filename": "umbrella.jpg", "content": b"\xff\xd8fake-jpeg"},
        "occurred_date": date(2026, 9, 30),
        "occurred_time_label": "Around 4 PM",
    }
    data.update(overrides)
    return data


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(db_engine):
    return ItemRepository(db_engine)


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def lifecycle(repository, object_store, gateway):
    return LifecycleEngine(repository, object_store, gateway, clock=StepClock())


@pytest.fixture
def users(db_engine):
    with Session(db_engine) as session:
        alice = User(public_id=ALICE.user_id, name="Alice", email=ALICE.email, phone=ALICE.phone, push_token="ExponentPushToken[alice]")
        bob = User(public_id=BOB.user_id, name="Bob", email=BOB.email, phone=BOB.phone, push_token="ExponentPushToken[bob]")
        carol = User(public_id="user-carol", name="Carol", email="carol@campus.edu")
        session.add_all([alice, bob, carol])
        session.commit()
        for user in (alice, bob, carol):
            session.refresh(user)
        return {"alice": alice, "bob": bob, "carol": carol}
