"""HTTP client for the card store (per-user inventories; admin scope = master catalog).

Routes (relative to ``store_url``):
    GET    /health
    GET    /inventory/{user}
    GET    /inventory/{user}/{id}
    POST   /inventory/{user}            create
    PUT    /inventory/{user}/{id}       update
    DELETE /inventory/{user}/{id}
    POST   /inventory/{user}/restore    bulk push of a local backup
"""
from __future__ import annotations

import copy
import json as _json
import logging
import threading
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from backend.app.models.event import GameEventBase, event_key, parse_event

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base for store failures; the engine treats every one as 'source unavailable'."""


class StoreUnavailableError(StoreError):
    """Network, timeout or 5xx failure."""


class StoreRejectedError(StoreError):
    """The store answered but refused the request (4xx other than 404)."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class EventStore(Protocol):
    def get_inventory(self, user_id: str) -> list[GameEventBase]: ...

    def get_event_by_id(self, user_id: str, event_id: str) -> GameEventBase | None: ...

    def create_or_update_event(self, user_id: str, event: GameEventBase) -> GameEventBase: ...

    def delete_event(self, user_id: str, event_id: str) -> None: ...

    def get_master_catalog(self) -> list[GameEventBase]: ...

    def restore_inventory(self, user_id: str, events: list[GameEventBase]) -> None: ...

    def check_health(self) -> bool: ...


def _seg(value: str) -> str:
    return quote(str(value), safe="")


class HttpEventStore:
    """Client for the store REST API."""

    def __init__(
        self,
        base_url: str,
        admin_scope: str,
        timeout: float = 10.0,
        admin_token: str = "",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.admin_scope = admin_scope
        headers = {"Content-Type": "application/json"}
        if admin_token:
            headers["x-admin-key"] = admin_token
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    # ------------------------------------------------------------------
    # Core request with error mapping
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, *, json: Any = None, allow_404: bool = False) -> Any:
        try:
            response = self.client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            logger.warning("Store request timed out: %s %s", method, path)
            raise StoreUnavailableError(f"Store timed out on {method} {path}") from exc
        except httpx.HTTPError as exc:
            logger.warning("Store unreachable at %s: %s", self.base_url, exc)
            raise StoreUnavailableError(f"Store unreachable: {exc}") from exc

        if response.status_code == 404 and allow_404:
            return None
        if response.status_code >= 500:
            logger.warning("Store returned HTTP %d for %s %s", response.status_code, method, path)
            raise StoreUnavailableError(f"Store HTTP error {response.status_code}")
        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning("Store rejected %s %s: %d %s", method, path, response.status_code, message)
            raise StoreRejectedError(message, response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except _json.JSONDecodeError as exc:
            raise StoreUnavailableError("Store returned non-JSON response") from exc

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def check_health(self) -> bool:
        try:
            self._request("GET", "/health")
        except StoreError:
            return False
        return True

    def get_inventory(self, user_id: str) -> list[GameEventBase]:
        data = self._request("GET", f"/inventory/{_seg(user_id)}", allow_404=True)
        return _parse_documents(data if isinstance(data, list) else [])

    def get_event_by_id(self, user_id: str, event_id: str) -> GameEventBase | None:
        data = self._request(
            "GET", f"/inventory/{_seg(user_id)}/{_seg(event_id)}", allow_404=True
        )
        if not isinstance(data, dict):
            return None
        parsed = _parse_documents([data])
        return parsed[0] if parsed else None

    def create_or_update_event(self, user_id: str, event: GameEventBase) -> GameEventBase:
        """Upsert by id: PUT when the store already has the id, POST otherwise."""
        existing = self.get_event_by_id(user_id, event.id)
        if existing is not None:
            data = self._request(
                "PUT", f"/inventory/{_seg(user_id)}/{_seg(event.id)}", json=event.to_wire()
            )
        else:
            data = self._request("POST", f"/inventory/{_seg(user_id)}", json=event.to_wire())
        parsed = _parse_documents([data]) if isinstance(data, dict) else []
        return parsed[0] if parsed else event

    def delete_event(self, user_id: str, event_id: str) -> None:
        # 404: nothing stored remotely (e.g. saved while offline), already gone
        self._request(
            "DELETE", f"/inventory/{_seg(user_id)}/{_seg(event_id)}", allow_404=True
        )

    def get_master_catalog(self) -> list[GameEventBase]:
        return self.get_inventory(self.admin_scope)

    def restore_inventory(self, user_id: str, events: list[GameEventBase]) -> None:
        if not events:
            return
        self._request(
            "POST",
            f"/inventory/{_seg(user_id)}/restore",
            json={"items": [e.to_wire() for e in events]},
        )


def _parse_documents(docs: list[Any]) -> list[GameEventBase]:
    events: list[GameEventBase] = []
    for doc in docs:
        try:
            events.append(parse_event(doc))
        except (ValueError, TypeError) as exc:
            doc_id = doc.get("id") if isinstance(doc, dict) else None
            logger.warning("Skipping malformed store document %s: %s", doc_id, exc)
    return events


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or response.reason_phrase)
    return response.reason_phrase


class InMemoryEventStore:
    """Store stand-in for guest/offline play and tests.

    ``online=False`` makes every call raise :class:`StoreUnavailableError`.
    """

    def __init__(self, admin_scope: str = "admin", online: bool = True) -> None:
        self.admin_scope = admin_scope
        self.online = online
        self._lock = threading.Lock()
        self._docs: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []

    def _check(self, op: str, user_id: str) -> None:
        self.calls.append((op, user_id))
        if not self.online:
            raise StoreUnavailableError(f"Store offline ({op})")

    def seed(self, user_id: str, events: list[GameEventBase]) -> None:
        with self._lock:
            scope = self._docs.setdefault(user_id, {})
            for ev in events:
                scope[ev.key] = ev.to_wire()

    def check_health(self) -> bool:
        return self.online

    def get_inventory(self, user_id: str) -> list[GameEventBase]:
        self._check("get_inventory", user_id)
        with self._lock:
            docs = [copy.deepcopy(d) for d in self._docs.get(user_id, {}).values()]
        return _parse_documents(docs)

    def get_event_by_id(self, user_id: str, event_id: str) -> GameEventBase | None:
        self._check("get_event_by_id", user_id)
        with self._lock:
            doc = self._docs.get(user_id, {}).get(event_key(event_id))
        return parse_event(copy.deepcopy(doc)) if doc is not None else None

    def create_or_update_event(self, user_id: str, event: GameEventBase) -> GameEventBase:
        self._check("create_or_update_event", user_id)
        with self._lock:
            self._docs.setdefault(user_id, {})[event.key] = event.to_wire()
        return parse_event(event.to_wire())

    def delete_event(self, user_id: str, event_id: str) -> None:
        self._check("delete_event", user_id)
        with self._lock:
            self._docs.get(user_id, {}).pop(event_key(event_id), None)

    def get_master_catalog(self) -> list[GameEventBase]:
        return self.get_inventory(self.admin_scope)

    def restore_inventory(self, user_id: str, events: list[GameEventBase]) -> None:
        self._check("restore_inventory", user_id)
        with self._lock:
            scope = self._docs.setdefault(user_id, {})
            for ev in events:
                scope[ev.key] = ev.to_wire()
