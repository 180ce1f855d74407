from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

import requests

from accountease.domain.errors import NotFoundError, RemoteOperationError

log = logging.getLogger(__name__)

API_ROOT = "https://firestore.googleapis.com/v1"


def encode_value(value: Any) -> dict:
    # bool must be checked before int
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": value.isoformat()}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    return {"stringValue": str(value)}


def encode_fields(record: dict) -> dict:
    return {k: encode_value(v) for k, v in record.items() if k != "id"}


def decode_value(value: dict) -> Any:
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "timestampValue" in value:
        return str(value["timestampValue"])
    if "stringValue" in value:
        return str(value["stringValue"])
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "referenceValue" in value:
        return str(value["referenceValue"])
    return None


def decode_fields(fields: dict) -> dict:
    return {k: decode_value(v) for k, v in fields.items()}


def decode_document(document: dict) -> dict:
    doc = decode_fields(document.get("fields", {}))
    doc["id"] = str(document.get("name", "")).rsplit("/", 1)[-1]
    return doc


class FirestoreRestStore:
    """Record store backed by the hosted Firestore REST API."""

    def __init__(
        self,
        project_id: str,
        token_provider: Callable[[], Optional[str]] | None = None,
        database: str = "(default)",
        session: requests.Session | None = None,
        timeout: float | None = None,
    ):
        self.project_id = project_id
        self.token_provider = token_provider or (lambda: None)
        self.base_url = f"{API_ROOT}/projects/{project_id}/databases/{database}/documents"
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self) -> dict:
        token = self.token_provider()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            r = self.session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            log.warning("firestore_request_failed method=%s url=%s error=%s", method, url, exc)
            raise RemoteOperationError(f"Record store unreachable: {exc}") from exc
        return r

    @staticmethod
    def _raise_for_status(r: requests.Response, what: str) -> None:
        try:
            r.raise_for_status()
        except requests.HTTPError as exc:
            raise RemoteOperationError(f"{what} failed with HTTP {r.status_code}: {r.text}") from exc

    def fetch_where(self, collection: str, owner_id: str, **equals: Any) -> list[dict]:
        filters = [
            {"fieldFilter": {"field": {"fieldPath": key}, "op": "EQUAL", "value": encode_value(value)}}
            for key, value in {"owner_id": owner_id, **equals}.items()
        ]
        where = filters[0] if len(filters) == 1 else {"compositeFilter": {"op": "AND", "filters": filters}}
        body = {"structuredQuery": {"from": [{"collectionId": collection}], "where": where}}

        r = self._request("POST", f"{self.base_url}:runQuery", json=body)
        self._raise_for_status(r, f"Query on '{collection}'")
        return [decode_document(row["document"]) for row in r.json() if "document" in row]

    def get(self, collection: str, record_id: str) -> Optional[dict]:
        r = self._request("GET", f"{self.base_url}/{collection}/{record_id}")
        if r.status_code == 404:
            return None
        self._raise_for_status(r, f"Read on '{collection}'")
        return decode_document(r.json())

    def insert(self, collection: str, record: dict) -> str:
        r = self._request("POST", f"{self.base_url}/{collection}", json={"fields": encode_fields(record)})
        self._raise_for_status(r, f"Insert into '{collection}'")
        return decode_document(r.json())["id"]

    def update(self, collection: str, record_id: str, changes: dict) -> None:
        fields = encode_fields(changes)
        params = [("updateMask.fieldPaths", k) for k in fields]
        params.append(("currentDocument.exists", "true"))
        r = self._request(
            "PATCH",
            f"{self.base_url}/{collection}/{record_id}",
            params=params,
            json={"fields": fields},
        )
        if r.status_code == 404:
            raise NotFoundError(f"Document '{record_id}' not found in '{collection}'.")
        self._raise_for_status(r, f"Update on '{collection}'")

    def delete(self, collection: str, record_id: str) -> None:
        r = self._request("DELETE", f"{self.base_url}/{collection}/{record_id}")
        self._raise_for_status(r, f"Delete on '{collection}'")
