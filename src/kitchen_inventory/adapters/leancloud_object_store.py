"""LeanCloud REST API object store."""

import json
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from kitchen_inventory.adapters.polling_sync_adapter import OBJECT_ID_FIELD, ObjectStore

UPDATED_AT_FIELD = "updatedAt"


def encode_value(value: object) -> object:
    """Encode datetimes as LeanCloud Date objects."""
    if isinstance(value, datetime):
        iso = value.astimezone(UTC).isoformat(timespec="milliseconds")
        return {"__type": "Date", "iso": iso.replace("+00:00", "Z")}
    return value


def decode_value(value: object) -> object:
    """Decode LeanCloud Date objects into aware datetimes."""
    if isinstance(value, dict) and value.get("__type") == "Date":
        return datetime.fromisoformat(str(value["iso"]))
    return value


@dataclass
class LeanCloudObjectStore(ObjectStore):
    """Object store backed by LeanCloud's storage REST API.

    Change detection uses the built-in ``updatedAt`` column, which LeanCloud
    sets on every write.
    """

    app_id: str
    app_key: str
    server_url: str
    http_client: httpx.AsyncClient
    stamp_field: str = UPDATED_AT_FIELD

    @classmethod
    def from_credentials(
        cls, app_id: str, app_key: str, server_url: str
    ) -> "LeanCloudObjectStore":
        """Create a store with a managed httpx session."""
        return cls(
            app_id=app_id,
            app_key=app_key,
            server_url=server_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
        )

    async def initialize(self) -> None:
        """Check that the application credentials are configured."""
        if not (self.app_id and self.app_key and self.server_url):
            raise ValueError("LeanCloud appId, appKey and serverURL are required")

    async def find_first(
        self,
        collection: str,
        filters: dict[str, object],
        *,
        newer_than: tuple[str, datetime] | None = None,
    ) -> dict[str, object] | None:
        """Query a class and return the first matching object."""
        where: dict[str, object] = {
            column: encode_value(value) for column, value in filters.items()
        }
        params: dict[str, object] = {"limit": 1}
        if newer_than is not None:
            column, since = newer_than
            where[column] = {"$gt": encode_value(since)}
            params["order"] = f"-{column}"
        params["where"] = json.dumps(where, ensure_ascii=False)
        response = await self.http_client.get(
            self._class_url(collection),
            params=params,
            headers=self._headers(),
            timeout=15,
        )
        response.raise_for_status()
        results = response.json().get("results", [])
        if not results:
            return None
        return {key: decode_value(value) for key, value in results[0].items()}

    async def create(
        self, collection: str, fields: dict[str, object]
    ) -> dict[str, object]:
        """Create an object and return it with its objectId and server stamp."""
        response = await self.http_client.post(
            self._class_url(collection),
            json={key: encode_value(value) for key, value in fields.items()},
            headers=self._headers(),
            timeout=15,
        )
        response.raise_for_status()
        body = response.json()
        record = {**fields, **body}
        if "createdAt" in body:
            record.setdefault(UPDATED_AT_FIELD, body["createdAt"])
        return record

    async def update(
        self, collection: str, object_id: str, fields: dict[str, object]
    ) -> dict[str, object]:
        """Overwrite the given fields of an object and return its new stamp."""
        response = await self.http_client.put(
            f"{self._class_url(collection)}/{object_id}",
            json={key: encode_value(value) for key, value in fields.items()},
            headers=self._headers(),
            timeout=15,
        )
        response.raise_for_status()
        return {key: decode_value(value) for key, value in response.json().items()}

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _class_url(self, collection: str) -> str:
        return f"{self.server_url}/1.1/classes/{collection}"

    def _headers(self) -> dict[str, str]:
        return {"X-LC-Id": self.app_id, "X-LC-Key": self.app_key}
