"""Event Store Client for Wedding Event Planner.

Thin async wrapper around the events CRUD API. It performs no business logic
beyond mapping HTTP outcomes onto:
- EventResponse / list of EventResponse on success
- NotFoundError when the record does not exist server-side (HTTP 404)
- TransportError for network failures, timeouts and server faults (5xx)
- StoreError for any other rejection (e.g. 422 validation errors)
"""

from typing import Any, Dict, List, Mapping, Optional, Union

import httpx
from pydantic import BaseModel, ValidationError

from config import settings
from errors import NotFoundError, StoreError, TransportError
from logger_config import setup_logger
from schemas import EventCreate, EventResponse, EventUpdate

logger = setup_logger(__name__, 'store.log')


def _payload(data: Union[BaseModel, Mapping[str, Any]], exclude_unset: bool = False) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", exclude_unset=exclude_unset)
    return dict(data)


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise StoreError(f"Event store returned invalid JSON: {e}", status_code=response.status_code) from e


def _error_detail(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        detail = None
    return str(detail) if detail else response.text


class EventStoreClient:
    """Async client for the events CRUD API.

    Usage:
        async with EventStoreClient("http://127.0.0.1:8005") as store:
            events = await store.list()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None
    ):
        self.base_url = (base_url or settings.EVENT_API_URL).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.STORE_TIMEOUT
        )

    async def __aenter__(self) -> "EventStoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, event_id: Optional[str] = None, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout on {method} {path}")
            raise TransportError(f"Timeout while calling event store: {e}") from e
        except httpx.RequestError as e:
            logger.error(f"Network error on {method} {path}: {str(e)}")
            raise TransportError(f"Network error while calling event store: {e}") from e

        if response.status_code == 404 and event_id is not None:
            logger.info(f"Event {event_id} not found on {method} {path}")
            raise NotFoundError(event_id)
        if response.status_code >= 500:
            logger.error(f"Server error on {method} {path}: {response.status_code} {response.text}")
            raise TransportError(
                f"Event store failed with status {response.status_code}",
                status_code=response.status_code
            )
        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.warning(f"Rejected {method} {path}: {response.status_code} {detail}")
            raise StoreError(f"Event store rejected request: {detail}", status_code=response.status_code)
        return response

    @staticmethod
    def _parse_event(data: Any) -> EventResponse:
        try:
            return EventResponse.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"Malformed event returned by store: {e}") from e

    async def create(self, draft: Union[EventCreate, Mapping[str, Any]]) -> EventResponse:
        """Create an event from a validated draft. Returns the stored record."""
        response = await self._request("POST", "/events", json=_payload(draft))
        event = self._parse_event(_json(response))
        logger.info(f"Created event {event.id}")
        return event

    async def update(self, event_id: str, patch: Union[EventUpdate, Mapping[str, Any]]) -> EventResponse:
        """Apply a partial update. Raises NotFoundError if the id is gone."""
        response = await self._request(
            "PUT", f"/events/{event_id}", event_id=event_id, json=_payload(patch, exclude_unset=True)
        )
        return self._parse_event(_json(response))

    async def delete(self, event_id: str) -> None:
        """Delete by id. Raises NotFoundError if the id is gone."""
        await self._request("DELETE", f"/events/{event_id}", event_id=event_id)
        logger.info(f"Deleted event {event_id}")

    async def list(self) -> List[EventResponse]:
        """Fetch every event, page by page. Records that fail to parse are skipped."""
        page_size = settings.MAX_EVENTS_LIST
        events: List[EventResponse] = []
        seen = set()
        offset = 0
        while True:
            response = await self._request("GET", "/events", params={"limit": page_size, "offset": offset})
            page = _json(response)
            if not isinstance(page, list):
                raise StoreError("Event store returned a non-list event page", status_code=response.status_code)

            for item in page:
                try:
                    event = EventResponse.model_validate(item)
                except ValidationError as e:
                    logger.warning(f"Skipping malformed event {item.get('id') if isinstance(item, dict) else item!r}: {e}")
                    continue
                # Rows shift between pages when events are added meanwhile
                if event.id not in seen:
                    seen.add(event.id)
                    events.append(event)

            if len(page) < page_size:
                return events
            offset += len(page)
