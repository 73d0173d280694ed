"""Firebase Realtime Database client over the REST API.

API docs: https://firebase.google.com/docs/reference/rest/database
Every node is addressable as <database-url>/<path>.json. Reads are GET,
whole-value replacement is PUT, deletion is DELETE.
"""
from typing import Any, Dict, Optional
import logging
from urllib.parse import quote

import httpx

from scoreboard.database import prune, split_path
from scoreboard.errors import StoreError

logger = logging.getLogger(__name__)


class RealtimeDatabase:
    """Async key-value tree backed by a Firebase Realtime Database."""

    def __init__(
        self,
        database_url: str,
        auth_token: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.database_url = database_url.rstrip("/")
        self.auth_token = auth_token
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0))
        )

    def _url(self, path: str) -> str:
        parts = [quote(part, safe="") for part in split_path(path)]
        return f"{self.database_url}/{'/'.join(parts)}.json"

    def _params(self, **extra: str) -> Dict[str, str]:
        params = dict(extra)
        if self.auth_token:
            params["auth"] = self.auth_token
        return params

    async def get(self, path: str) -> Any:
        try:
            response = await self._client.get(self._url(path), params=self._params())
            response.raise_for_status()
            # Nodes whose keys are mostly small integers ("0", "1", ...) come
            # back as JSON arrays with null holes; restore them to objects
            return prune(response.json())
        except httpx.HTTPStatusError as e:
            raise StoreError(
                f"Realtime Database read of {path} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise StoreError(f"Realtime Database read failed for {path}: {e}") from e
        except ValueError as e:
            raise StoreError(f"Realtime Database returned invalid JSON for {path}") from e

    async def set(self, path: str, value: Any) -> None:
        # print=silent makes the server answer 204 instead of echoing the value
        params = self._params(print="silent")
        try:
            if value is None:
                response = await self._client.delete(self._url(path), params=params)
            else:
                response = await self._client.put(self._url(path), params=params, json=value)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StoreError(
                f"Realtime Database write of {path} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise StoreError(f"Realtime Database write failed for {path}: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()
