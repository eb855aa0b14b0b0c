from __future__ import annotations

from collections.abc import Callable, Iterator

import httpx
import pytest

from kintone_sdk.client import KintoneClient
from kintone_sdk.models import Credentials

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(domain="example.cybozu.com", app=229, token="api-token")


@pytest.fixture
def make_client(credentials: Credentials) -> Iterator[Callable[..., KintoneClient]]:
    """Build a client whose HTTP calls go to ``handler``; requests are recorded on ``client.requests``."""
    clients: list[KintoneClient] = []

    def factory(handler: Handler, creds: Credentials | None = None) -> KintoneClient:
        seen: list[httpx.Request] = []

        def recording(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        client = KintoneClient(creds or credentials, transport=httpx.MockTransport(recording))
        client.requests = seen  # type: ignore[attr-defined]
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()


def make_record(record_id: int, **values: object) -> dict[str, dict[str, object]]:
    record: dict[str, dict[str, object]] = {"$id": {"type": "__ID__", "value": str(record_id)}}
    for code, value in values.items():
        record[code] = {"type": "SINGLE_LINE_TEXT", "value": value}
    return record
