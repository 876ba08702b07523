import asyncio
from typing import List

import httpx

from triplist.pagination import PageRequest, activity_paginator, trip_paginator
from triplist.schemas import Activity, Trip
from triplist.tools.http_source import HttpPageSource


class DummyResponse:
    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            request = httpx.Request("GET", "http://test")
            raise httpx.HTTPStatusError(
                f"Server error '{self.status_code}'",
                request=request,
                response=httpx.Response(self.status_code, request=request),
            )
        return None

    def json(self):
        return self._payload


class DummyAsyncClient:
    def __init__(self, response, *args, **kwargs):
        self.response = response
        self.requests: List[tuple] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def get(self, url, params=None):
        self.requests.append((url, params))
        return self.response


def _trip_payload(trip_id: str) -> dict:
    return {
        "id": trip_id,
        "user_id": "u1",
        "name": f"Trip {trip_id}",
        "location": "Paris",
        "description": "",
        "start_date": "2030-05-01",
        "end_date": "2030-05-03",
        "status": "planning",
        "created_at": "2030-01-01T00:00:00+00:00",
        "updated_at": "2030-01-01T00:00:00+00:00",
    }


def test_trips_request_carries_cursor_and_parses_models(monkeypatch):
    async def run() -> None:
        payload = {
            "items": [_trip_payload("t1"), _trip_payload("t2")],
            "cursor": "t2",
            "has_more": True,
            "total_retrieved": 2,
        }
        dummy = DummyAsyncClient(DummyResponse(payload))
        monkeypatch.setattr(httpx, "AsyncClient", lambda *a, **kw: dummy)

        source = HttpPageSource("http://api.test/")
        page = await source.trips("u1", PageRequest(page_size=2, cursor="t0"))

        assert dummy.requests == [
            ("http://api.test/api/users/u1/trips", {"page_size": 2, "cursor": "t0"})
        ]
        assert all(isinstance(item, Trip) for item in page.items)
        assert page.cursor == "t2"
        assert page.has_more is True

    asyncio.run(run())


def test_first_page_request_omits_empty_cursor(monkeypatch):
    async def run() -> None:
        dummy = DummyAsyncClient(DummyResponse({"items": [], "has_more": False}))
        monkeypatch.setattr(httpx, "AsyncClient", lambda *a, **kw: dummy)

        source = HttpPageSource("http://api.test")
        pager = trip_paginator(page_size=5)
        await pager.load_first_page(source.search_trips, "u1", "paris")

        url, params = dummy.requests[0]
        assert url == "http://api.test/api/users/u1/trips/search"
        assert params == {"q": "paris", "page_size": 5}
        assert pager.is_empty is True

    asyncio.run(run())


def test_day_activities_feed_index_paginator(monkeypatch):
    async def run() -> None:
        payload = {
            "items": [{"id": "a1", "name": "Louvre", "start_time": "09:00", "end_time": "11:00"}],
            "has_more": False,
            "next_start_index": 1,
            "total_available": 1,
        }
        dummy = DummyAsyncClient(DummyResponse(payload))
        monkeypatch.setattr(httpx, "AsyncClient", lambda *a, **kw: dummy)

        pager = activity_paginator(page_size=4)
        await pager.load_first_page(HttpPageSource("http://api.test").day_activities, "t1", 0)

        assert dummy.requests[0][1] == {"page_size": 4, "start_index": 0}
        assert isinstance(pager.items[0], Activity)
        assert pager.start_index == 1
        assert pager.total_available == 1

    asyncio.run(run())


def test_http_errors_surface_as_list_error(monkeypatch):
    async def run() -> None:
        dummy = DummyAsyncClient(DummyResponse({}, status_code=503))
        monkeypatch.setattr(httpx, "AsyncClient", lambda *a, **kw: dummy)

        pager = trip_paginator()
        await pager.load_first_page(HttpPageSource("http://api.test").trips, "u1")

        assert pager.has_error is True
        assert "503" in pager.error
        assert pager.items == []
        assert pager.loading is False

    asyncio.run(run())
