from __future__ import annotations

import base64
import json
import threading
from contextlib import asynccontextmanager

import httpx
import pytest
from mcp.shared.memory import create_connected_server_and_client_session

from kintone_sdk.mcp_server import create_mcp_server
from kintone_sdk.settings import Settings


@pytest.fixture
def settings(monkeypatch, tmp_path) -> Settings:
    monkeypatch.chdir(tmp_path)
    return Settings(
        KINTONE_DOMAIN="example.cybozu.com",
        KINTONE_APP_ID="229",
        KINTONE_API_TOKEN="api-token",
        MCP_API_KEY="k",
    )


@asynccontextmanager
async def tool_session(settings: Settings, handler):
    """Connect a client session to the server, with Kintone calls routed to ``handler``."""
    mcp = create_mcp_server(settings, transport=httpx.MockTransport(handler))
    async with create_connected_server_and_client_session(mcp._mcp_server) as session:
        yield session


def _payload(result) -> dict:
    assert not result.isError, result.content
    return json.loads(result.content[0].text)


class TestRecordTools:
    @pytest.mark.asyncio
    async def test_record_update_by_update_key(self, settings) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"revision": "4"})

        async with tool_session(settings, handler) as session:
            result = await session.call_tool(
                "record_update",
                {
                    "record": {"status": {"value": "done"}},
                    "update_key_field": "code",
                    "update_key_value": "C-1",
                },
            )

        assert _payload(result) == {"revision": "4"}
        (request,) = seen
        assert request.method == "PUT"
        assert json.loads(request.content) == {
            "app": 229,
            "record": {"status": {"value": "done"}},
            "updateKey": {"field": "code", "value": "C-1"},
        }

    @pytest.mark.asyncio
    async def test_records_delete_response(self, settings) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        async with tool_session(settings, handler) as session:
            result = await session.call_tool("records_delete", {"ids": [3, 4], "app_id": 12})

        assert _payload(result) == {"deleted": True, "ids": [3, 4]}
        assert json.loads(seen[0].content) == {"app": 12, "ids": [3, 4]}

    @pytest.mark.asyncio
    async def test_records_get_returns_total(self, settings) -> None:
        records = [{"$id": {"type": "__ID__", "value": "1"}}]

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"records": records, "totalCount": "1"})

        async with tool_session(settings, handler) as session:
            result = await session.call_tool("records_get", {"query": 'name = "x"'})

        assert _payload(result) == {"records": records, "total_count": 1}

    @pytest.mark.asyncio
    async def test_api_error_is_reported_as_tool_error(self, settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"code": "GAIA_RE01", "message": "Record not found."})

        async with tool_session(settings, handler) as session:
            result = await session.call_tool("record_get", {"record_id": 99})

        assert result.isError
        assert "Record not found." in result.content[0].text

    @pytest.mark.asyncio
    async def test_client_calls_run_off_the_event_loop(self, settings) -> None:
        loop_thread = threading.get_ident()
        handler_threads: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            handler_threads.append(threading.get_ident())
            return httpx.Response(200, json={"properties": {"name": {"type": "SINGLE_LINE_TEXT"}}})

        async with tool_session(settings, handler) as session:
            result = await session.call_tool("form_fields_get", {})

        assert _payload(result) == {"name": {"type": "SINGLE_LINE_TEXT"}}
        assert handler_threads
        assert loop_thread not in handler_threads


class TestFileTools:
    @pytest.mark.asyncio
    async def test_file_upload_decodes_base64(self, settings) -> None:
        seen: list[bytes] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.read())
            return httpx.Response(200, json={"fileKey": "fk-1"})

        data = base64.b64encode(b"hello kintone").decode("ascii")
        async with tool_session(settings, handler) as session:
            result = await session.call_tool(
                "file_upload", {"filename": "hello.txt", "data_base64": data}
            )

        assert _payload(result) == {"fileKey": "fk-1"}
        assert b'filename="hello.txt"' in seen[0]
        assert b"hello kintone" in seen[0]

    @pytest.mark.asyncio
    async def test_file_upload_rejects_invalid_base64(self, settings) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"fileKey": "never"})

        async with tool_session(settings, handler) as session:
            result = await session.call_tool(
                "file_upload", {"filename": "x.bin", "data_base64": "not base64!"}
            )

        assert result.isError
        assert "Invalid base64" in result.content[0].text
        assert seen == []

    @pytest.mark.asyncio
    async def test_file_download_encodes_base64(self, settings) -> None:
        raw = b"\x00\x01binary\xff"

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=raw)

        async with tool_session(settings, handler) as session:
            result = await session.call_tool("file_download", {"file_key": "fk-9"})

        assert _payload(result) == {
            "file_key": "fk-9",
            "size": len(raw),
            "data_base64": base64.b64encode(raw).decode("ascii"),
        }
