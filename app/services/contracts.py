from typing import Any, Dict, Protocol, Tuple

from app.schemas.posting import ImageRef


class ObjectStore(Protocol):
    async def upload(self, image: ImageRef) -> Tuple[str, str]:
        """Store the image, returning ``(url, deletion_handle)``."""
        ...

    async def delete(self, deletion_handle: str) -> None:
        ...


class NotificationGateway(Protocol):
    async def send_to_all_except(
        self, excluded_user_id: str, title: str, body: str, payload: Dict[str, Any]
    ) -> None:
        ...

    async def send_to_user(
        self, user_id: str, title: str, body: str, payload: Dict[str, Any]
    ) -> None:
        ...
