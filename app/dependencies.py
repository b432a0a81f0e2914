from functools import lru_cache
from fastapi import Depends

from app.db.db import engine
from app.services.lifecycle import LifecycleEngine
from app.services.repository import ItemRepository
from app.utils.push_service import ExpoPushGateway
from app.utils.s3_service import S3ObjectStore


@lru_cache
def get_repository() -> ItemRepository:
    # one instance so every live feed sees every write
    return ItemRepository(engine)


@lru_cache
def get_object_store() -> S3ObjectStore:
    return S3ObjectStore.from_env()


@lru_cache
def get_notification_gateway() -> ExpoPushGateway:
    return ExpoPushGateway(engine)


def get_lifecycle_engine(
    repository: ItemRepository = Depends(get_repository),
    object_store: S3ObjectStore = Depends(get_object_store),
    gateway: ExpoPushGateway = Depends(get_notification_gateway),
) -> LifecycleEngine:
    return LifecycleEngine(repository, object_store, gateway)
