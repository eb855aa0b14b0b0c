"""Synchronous client for the Kintone REST API."""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlsplit

import httpx

from .auth import get_request_headers
from .errors import KintoneApiError, KintoneTransportError, KintoneValidationError
from .models import Credentials, Record, RecordsPage, RecordsResult, UpdateKey
from .paginator import ALL, fetch_by_id, fetch_by_offset

logger = logging.getLogger(__name__)


def _app_id(app: int | str | None) -> int:
    """Validate an app identifier before anything touches the network."""
    if isinstance(app, int) and not isinstance(app, bool) and app > 0:
        return app
    if isinstance(app, str):
        app = app.strip()
        if app.isascii() and app.isdigit() and int(app) > 0:
            return int(app)
    raise KintoneValidationError(code="kintone", message="Application ID must be numeric.")


def _decode(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


def _api_error(resp: httpx.Response, body: Any, error_code: str | None = None) -> KintoneApiError:
    payload = body if isinstance(body, dict) else {}
    message = payload.get("message") or (resp.text or "").strip()
    return KintoneApiError(
        code=error_code or str(payload.get("code") or resp.status_code),
        message=message or f"Unexpected response (HTTP {resp.status_code})",
        status_code=resp.status_code,
        method=resp.request.method,
        url=str(resp.request.url),
        payload=payload,
    )


def _is_error(resp: httpx.Response, body: Any) -> bool:
    if resp.status_code != 200 or not isinstance(body, dict):
        return True
    return "code" in body and "message" in body


class KintoneClient:
    """Thin wrapper around Kintone's REST API for one set of credentials.

    Every app-scoped method takes an optional ``app`` overriding
    ``credentials.app`` for that call.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        timeout_seconds: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.credentials = credentials
        self._client = httpx.Client(
            base_url=credentials.base_url,
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> KintoneClient:
        return cls(
            settings.credentials(),
            timeout_seconds=settings.http_timeout_seconds,
            **kwargs,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> KintoneClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _app(self, app: int | str | None) -> int:
        return _app_id(self.credentials.app if app is None else app)

    def _send(
        self,
        method: str,
        url: str,
        *,
        authenticated: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = get_request_headers(self.credentials) if authenticated else {}
        logger.debug("%s %s", method, url)
        try:
            return self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise KintoneTransportError(
                code="http_request_failed",
                message=str(exc) or type(exc).__name__,
                method=method,
                url=url,
            ) from exc

    def request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        error_code: str | None = None,
    ) -> dict[str, Any]:
        """Perform one JSON call and return the decoded body.

        A non-200 status or a body carrying both ``code`` and ``message`` is
        raised as :class:`KintoneApiError`. ``error_code`` replaces the remote
        code in the raised error; the remote body is kept as ``payload``.
        """
        resp = self._send(method.upper(), path, params=params, json=json_body)
        body = _decode(resp)
        if _is_error(resp, body):
            raise _api_error(resp, body, error_code)
        return body

    # Metadata

    def get_form(self, app: int | str | None = None) -> list[dict[str, Any]]:
        """Return the form layout (``properties`` of ``form.json``)."""
        body = self.request_json("GET", "/k/v1/form.json", params={"app": self._app(app)})
        return body["properties"]

    def get_form_fields(self, app: int | str | None = None) -> dict[str, Any]:
        """Return the field definitions keyed by field code."""
        body = self.request_json(
            "GET", "/k/v1/app/form/fields.json", params={"app": self._app(app)}
        )
        return body["properties"]

    # Records: read

    def get_record(self, record_id: int | str, app: int | str | None = None) -> Record:
        body = self.request_json(
            "GET", "/k/v1/record.json", params={"app": self._app(app), "id": record_id}
        )
        return body["record"]

    def get_records_page(
        self,
        query: str = "",
        fields: Sequence[str] | None = None,
        app: int | str | None = None,
    ) -> RecordsPage:
        """One ``records.json`` call; ``query`` must already carry any limit/offset."""
        params: dict[str, Any] = {"app": self._app(app), "query": query, "totalCount": "true"}
        for i, code in enumerate(fields or ()):
            params[f"fields[{i}]"] = code
        body = self.request_json("GET", "/k/v1/records.json", params=params)
        total = body.get("totalCount")
        return RecordsPage(
            records=body.get("records") or [],
            total_count=int(total) if total is not None else None,
        )

    def get_records(
        self,
        query: str = "",
        limit: int = ALL,
        fields: Sequence[str] | None = None,
        total_count: bool = False,
        app: int | str | None = None,
    ) -> list[Record] | RecordsResult:
        """Fetch records with limit/offset paging.

        ``limit=-1`` fetches every matching record. With ``total_count=True``
        a :class:`RecordsResult` carrying the server's total is returned
        instead of a plain list.
        """
        app_id = self._app(app)
        result = fetch_by_offset(
            lambda q: self.get_records_page(q, fields=fields, app=app_id),
            query,
            limit=limit,
        )
        return result if total_count else result.records

    def get_all_records_sort_by_id(
        self,
        query: str = "",
        fields: Sequence[str] | None = None,
        total_count: bool = False,
        app: int | str | None = None,
    ) -> list[Record] | RecordsResult:
        """Fetch every record matching ``query`` by walking ``$id`` upwards.

        ``query`` is a condition only; ordering and limits are added here.
        """
        app_id = self._app(app)
        if fields is not None and "$id" not in fields:
            fields = [*fields, "$id"]
        result = fetch_by_id(
            lambda q: self.get_records_page(q, fields=fields, app=app_id),
            query,
        )
        return result if total_count else result.records

    # Records: write

    def add_record(self, record: Record, app: int | str | None = None) -> dict[str, Any]:
        return self.request_json(
            "POST",
            "/k/v1/record.json",
            json_body={"app": self._app(app), "record": record},
            error_code="validation-error",
        )

    def add_records(self, records: Sequence[Record], app: int | str | None = None) -> dict[str, Any]:
        return self.request_json(
            "POST",
            "/k/v1/records.json",
            json_body={"app": self._app(app), "records": list(records)},
            error_code="validation-error",
        )

    def update_record(
        self,
        record: Record,
        record_id: int | str | None = None,
        update_key: UpdateKey | dict[str, Any] | None = None,
        revision: int | None = None,
        app: int | str | None = None,
    ) -> dict[str, Any]:
        """Replace field values of one record, identified by id or update key."""
        body: dict[str, Any] = {"app": self._app(app), "record": record}
        if (record_id is None) == (update_key is None):
            raise KintoneValidationError(
                code="kintone", message="Exactly one of record_id or update_key is required."
            )
        if record_id is not None:
            body["id"] = record_id
        else:
            body["updateKey"] = UpdateKey.model_validate(update_key).model_dump()
        if revision is not None:
            body["revision"] = revision
        return self.request_json(
            "PUT", "/k/v1/record.json", json_body=body, error_code="validation-error"
        )

    def update_records(
        self, records: Sequence[dict[str, Any]], app: int | str | None = None
    ) -> dict[str, Any]:
        """Bulk update; each entry holds ``record`` plus ``id`` or ``updateKey``."""
        app_id = self._app(app)
        for entry in records:
            if "record" not in entry or ("id" in entry) == ("updateKey" in entry):
                raise KintoneValidationError(
                    code="kintone",
                    message="Each record needs 'record' and exactly one of 'id' or 'updateKey'.",
                )
        return self.request_json(
            "PUT",
            "/k/v1/records.json",
            json_body={"app": app_id, "records": list(records)},
            error_code="validation-error",
        )

    def delete_records(
        self,
        ids: Sequence[int | str],
        revisions: Sequence[int] | None = None,
        app: int | str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"app": self._app(app), "ids": list(ids)}
        if revisions is not None:
            body["revisions"] = list(revisions)
        return self.request_json(
            "DELETE", "/k/v1/records.json", json_body=body, error_code="validation-error"
        )

    # Files

    def upload_file(
        self,
        *,
        filename: str,
        data: bytes,
        content_type: str | None = None,
    ) -> str:
        """Upload an attachment as multipart/form-data and return its ``fileKey``."""
        mime = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        resp = self._send("POST", "/k/v1/file.json", files={"file": (filename, data, mime)})
        body = _decode(resp)
        if _is_error(resp, body) or "fileKey" not in body:
            raise _api_error(resp, body)
        return body["fileKey"]

    def upload_file_from_path(self, path: str | Path, content_type: str | None = None) -> str:
        path = Path(path)
        return self.upload_file(filename=path.name, data=path.read_bytes(), content_type=content_type)

    def upload_file_from_url(self, url: str) -> str:
        """Fetch a remote file into memory and upload it."""
        resp = self._send("GET", url, authenticated=False, follow_redirects=True)
        if resp.status_code >= 400:
            raise _api_error(resp, None)
        filename = unquote(Path(urlsplit(url).path).name) or "file"
        content_type = resp.headers.get("content-type", "").split(";")[0].strip() or None
        return self.upload_file(filename=filename, data=resp.content, content_type=content_type)

    def download_file(self, file_key: str) -> bytes:
        """Return the raw bytes of an attachment."""
        resp = self._send("GET", "/k/v1/file.json", params={"fileKey": file_key})
        if resp.status_code != 200:
            raise _api_error(resp, _decode(resp))
        return resp.content
