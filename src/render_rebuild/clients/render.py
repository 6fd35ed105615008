"""Render REST API client.

Every call goes through `_request`, the single place where transport and
HTTP status failures become a RemoteError carrying the operation name and
the remote status code.
"""

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
import structlog

from ..errors import RemoteError
from ..schemas import ConnectionInfo, Database, Deploy, DeployEvent

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://api.render.com/v1"
PAGE_LIMIT = 100

ModelT = TypeVar("ModelT", bound=BaseModel)


def _error_message(response: httpx.Response) -> str:
    """Extract Render's error message from a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase


class RenderClient:
    """Async client for the Render API endpoints used by a rebuild."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Render API key is required")
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "RenderClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Accept": "application/json",
                    "Authorization": f"Bearer {self._api_key}",
                },
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, operation: str, method: str, path: str, **kwargs) -> httpx.Response:
        client = await self._get_client()
        try:
            resp = await client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            message = _error_message(e.response)
            logger.error(
                "render_request_failed",
                operation=operation,
                method=method,
                path=path,
                status_code=status_code,
                error=message,
            )
            raise RemoteError(operation, status_code, message) from e
        except httpx.HTTPError as e:
            logger.error(
                "render_request_failed",
                operation=operation,
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RemoteError(operation, None, str(e) or type(e).__name__) from e
        return resp

    @staticmethod
    def _parse(operation: str, model: type[ModelT], resp: httpx.Response) -> ModelT:
        try:
            return model.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            logger.error("render_response_invalid", operation=operation, error=str(e))
            raise RemoteError(operation, resp.status_code, "Unexpected response body") from e

    async def _paginate(self, operation: str, path: str, key: str, limit: int) -> list[Any]:
        """Collect every page of a cursor-paginated list, unwrapping `key`."""
        items: list[Any] = []
        cursor: str | None = None

        while True:
            params: dict[str, Any] = {"limit": limit}
            if cursor:
                params["cursor"] = cursor
            resp = await self._request(operation, "GET", path, params=params)
            batch = resp.json()
            if not isinstance(batch, list):
                logger.error(
                    "render_response_invalid", operation=operation, error="expected a list"
                )
                raise RemoteError(operation, resp.status_code, "Unexpected response body")
            if not batch:
                break
            items.extend(entry.get(key) if isinstance(entry, dict) else None for entry in batch)
            if len(batch) < limit:
                break
            last = batch[-1]
            cursor = last.get("cursor") if isinstance(last, dict) else None
            if not cursor:
                break

        return items

    # --- Owners ---

    async def list_owners(self, limit: int = 1) -> list[dict[str, Any]]:
        resp = await self._request("list_owners", "GET", "/owners", params={"limit": limit})
        return [entry.get("owner") for entry in resp.json() if isinstance(entry, dict)]

    # --- Services ---

    async def list_services(self, limit: int = PAGE_LIMIT) -> list[dict[str, Any] | None]:
        """List services as raw records; malformed entries come back as None."""
        return await self._paginate("list_services", "/services", "service", limit)

    async def set_env_var(self, service_id: str, key: str, value: str) -> dict[str, Any]:
        """Create or replace one env var on a service."""
        resp = await self._request(
            "set_env_var",
            "PUT",
            f"/services/{service_id}/env-vars/{key}",
            json={"value": value},
        )
        return resp.json() if resp.content else {}

    async def trigger_deploy(self, service_id: str, clear_cache: bool = True) -> Deploy:
        resp = await self._request(
            "trigger_deploy",
            "POST",
            f"/services/{service_id}/deploys",
            json={"clearCache": "clear" if clear_cache else "do_not_clear"},
        )
        if not resp.content:
            # 202: deploy queued behind a running one
            return Deploy(id=None, status="queued")
        return self._parse("trigger_deploy", Deploy, resp)

    async def list_events(self, service_id: str, limit: int = 10) -> list[DeployEvent]:
        """Most recent events for a service, newest first."""
        resp = await self._request(
            "list_events", "GET", f"/services/{service_id}/events", params={"limit": limit}
        )
        events = []
        for entry in resp.json():
            raw = entry.get("event") if isinstance(entry, dict) else None
            if raw is None:
                continue
            try:
                events.append(DeployEvent.model_validate(raw))
            except ValidationError:
                logger.debug("render_event_skipped", service_id=service_id)
        return events

    # --- Postgres ---

    async def list_postgres(self, limit: int = PAGE_LIMIT) -> list[dict[str, Any] | None]:
        return await self._paginate("list_postgres", "/postgres", "postgres", limit)

    async def get_postgres(self, postgres_id: str) -> Database:
        resp = await self._request("get_postgres", "GET", f"/postgres/{postgres_id}")
        return self._parse("get_postgres", Database, resp)

    async def get_connection_info(self, postgres_id: str) -> ConnectionInfo:
        resp = await self._request(
            "get_connection_info", "GET", f"/postgres/{postgres_id}/connection-info"
        )
        return self._parse("get_connection_info", ConnectionInfo, resp)

    async def create_postgres(self, payload: dict[str, Any]) -> Database:
        resp = await self._request("create_postgres", "POST", "/postgres", json=payload)
        return self._parse("create_postgres", Database, resp)

    async def delete_postgres(self, postgres_id: str) -> int:
        """Delete a Postgres instance and return the HTTP status code."""
        resp = await self._request("delete_postgres", "DELETE", f"/postgres/{postgres_id}")
        return resp.status_code
