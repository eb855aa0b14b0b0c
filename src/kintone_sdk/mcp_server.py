"""FastMCP server exposing the Kintone SDK as tools."""

from __future__ import annotations

import base64
import binascii
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx
from anyio import to_thread
from mcp.server.fastmcp import Context, FastMCP

from .client import KintoneClient
from .models import RecordsResult
from .settings import Settings

T = TypeVar("T")


@dataclass(slots=True)
class AppContext:
    settings: Settings
    kintone: KintoneClient


def _parse_fields(fields: str | None) -> list[str] | None:
    if fields is None:
        return None
    cleaned = [f.strip() for f in fields.split(",") if f.strip()]
    return cleaned or None


async def _run(ctx: Context, call: Callable[[KintoneClient], T]) -> T:
    """Run a blocking client call in a worker thread so the event loop keeps serving."""
    app: AppContext = ctx.request_context.lifespan_context
    return await to_thread.run_sync(call, app.kintone)


def create_mcp_server(
    settings: Settings,
    *,
    transport: httpx.BaseTransport | None = None,
) -> FastMCP:
    @asynccontextmanager
    async def lifespan(_: FastMCP) -> AsyncIterator[AppContext]:
        kintone = KintoneClient.from_settings(settings, transport=transport)
        try:
            yield AppContext(settings=settings, kintone=kintone)
        finally:
            kintone.close()

    mcp = FastMCP(
        "Kintone",
        instructions=(
            "Read and write Kintone app records, form metadata and file attachments. "
            "App ids default to the configured app when omitted."
        ),
        lifespan=lifespan,
        stateless_http=True,
        json_response=True,
    )

    @mcp.tool()
    async def form_get(ctx: Context, app_id: int | None = None) -> list[dict[str, Any]]:
        """Get the form layout of an app."""
        return await _run(ctx, lambda k: k.get_form(app=app_id))

    @mcp.tool()
    async def form_fields_get(ctx: Context, app_id: int | None = None) -> dict[str, Any]:
        """Get the field definitions of an app, keyed by field code."""
        return await _run(ctx, lambda k: k.get_form_fields(app=app_id))

    @mcp.tool()
    async def records_get(
        ctx: Context,
        query: str = "",
        limit: int = 100,
        fields: str | None = None,
        app_id: int | None = None,
    ) -> RecordsResult:
        """Query records with limit/offset paging (limit=-1 fetches all)."""
        return await _run(
            ctx,
            lambda k: k.get_records(
                query, limit=limit, fields=_parse_fields(fields), total_count=True, app=app_id
            ),
        )

    @mcp.tool()
    async def records_get_all_by_id(
        ctx: Context,
        condition: str = "",
        fields: str | None = None,
        app_id: int | None = None,
    ) -> RecordsResult:
        """Fetch every record matching a condition, walking record ids upwards."""
        return await _run(
            ctx,
            lambda k: k.get_all_records_sort_by_id(
                condition, fields=_parse_fields(fields), total_count=True, app=app_id
            ),
        )

    @mcp.tool()
    async def record_get(record_id: int, ctx: Context, app_id: int | None = None) -> dict[str, Any]:
        """Get a single record by id."""
        return await _run(ctx, lambda k: k.get_record(record_id, app=app_id))

    @mcp.tool()
    async def record_add(
        record: dict[str, Any], ctx: Context, app_id: int | None = None
    ) -> dict[str, Any]:
        """Create a record. Values use Kintone's shape: {"code": {"value": ...}}."""
        return await _run(ctx, lambda k: k.add_record(record, app=app_id))

    @mcp.tool()
    async def records_add(
        records: list[dict[str, Any]], ctx: Context, app_id: int | None = None
    ) -> dict[str, Any]:
        """Create several records in one call."""
        return await _run(ctx, lambda k: k.add_records(records, app=app_id))

    @mcp.tool()
    async def record_update(
        record: dict[str, Any],
        ctx: Context,
        record_id: int | None = None,
        update_key_field: str | None = None,
        update_key_value: str | None = None,
        revision: int | None = None,
        app_id: int | None = None,
    ) -> dict[str, Any]:
        """Update a record by id, or by an update key field and its value."""
        update_key = None
        if update_key_field:
            update_key = {"field": update_key_field, "value": update_key_value}
        return await _run(
            ctx,
            lambda k: k.update_record(
                record,
                record_id=record_id,
                update_key=update_key,
                revision=revision,
                app=app_id,
            ),
        )

    @mcp.tool()
    async def records_update(
        records: list[dict[str, Any]], ctx: Context, app_id: int | None = None
    ) -> dict[str, Any]:
        """Update several records; each entry holds "record" plus "id" or "updateKey"."""
        return await _run(ctx, lambda k: k.update_records(records, app=app_id))

    @mcp.tool()
    async def records_delete(
        ids: list[int], ctx: Context, app_id: int | None = None
    ) -> dict[str, Any]:
        """Delete records by id."""
        await _run(ctx, lambda k: k.delete_records(ids, app=app_id))
        return {"deleted": True, "ids": ids}

    @mcp.tool()
    async def file_download(file_key: str, ctx: Context) -> dict[str, Any]:
        """Download an attachment, returned base64-encoded."""
        data = await _run(ctx, lambda k: k.download_file(file_key))
        return {
            "file_key": file_key,
            "size": len(data),
            "data_base64": base64.b64encode(data).decode("ascii"),
        }

    @mcp.tool()
    async def file_upload(
        filename: str,
        data_base64: str,
        ctx: Context,
        content_type: str | None = None,
    ) -> dict[str, Any]:
        """Upload an attachment from base64 bytes; returns the fileKey to put in a FILE field."""
        try:
            raw_bytes = base64.b64decode(data_base64, validate=True)
        except binascii.Error as exc:
            raise ValueError("Invalid base64 data in 'data_base64'") from exc
        file_key = await _run(
            ctx,
            lambda k: k.upload_file(filename=filename, data=raw_bytes, content_type=content_type),
        )
        return {"fileKey": file_key}

    @mcp.tool()
    async def file_upload_from_url(url: str, ctx: Context) -> dict[str, Any]:
        """Fetch a file from a URL and upload it as an attachment."""
        file_key = await _run(ctx, lambda k: k.upload_file_from_url(url))
        return {"fileKey": file_key}

    return mcp
