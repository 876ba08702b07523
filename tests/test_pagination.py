import asyncio
from dataclasses import dataclass
from unittest.mock import AsyncMock

from triplist.pagination import ListState, PageRequest, Paginator, activity_paginator, trip_paginator
from triplist.schemas import Activity, PageResult


def _rows(prefix: str, count: int) -> list:
    return [{"id": f"{prefix}{i}", "name": f"Trip {prefix}{i}"} for i in range(count)]


def _paged_fetch(pages: list):
    """Fetch function that hands out ``pages`` in order and records its options."""
    calls = []

    async def fetch(*args):
        calls.append(args)
        return pages[len(calls) - 1]

    return fetch, calls


def test_empty_store_leaves_list_empty_without_error():
    async def run():
        pager = trip_paginator()
        fetch = AsyncMock(return_value={"items": [], "cursor": None, "has_more": False, "total_retrieved": 0})
        await pager.load_first_page(fetch)

        assert pager.is_empty is True
        assert pager.has_error is False
        assert pager.has_more is False
        assert pager.status == "loaded"

    asyncio.run(run())


def test_next_page_forwards_stored_cursor_and_appends():
    async def run():
        first = PageResult(items=_rows("a", 10), cursor="c1", has_more=True, total_retrieved=10)
        second = PageResult(items=_rows("b", 5), cursor="c2", has_more=False, total_retrieved=5)
        fetch, calls = _paged_fetch([first, second])

        pager = trip_paginator(page_size=10)
        await pager.load_first_page(fetch)
        await pager.load_next_page(fetch)

        options = calls[1][-1]
        assert isinstance(options, PageRequest)
        assert options.page_size == 10
        assert options.cursor == "c1"
        assert len(pager.items) == 15
        assert pager.total_loaded == 15
        assert pager.has_more is False
        assert [row["id"] for row in pager.items] == [r["id"] for r in first.items + second.items]
        assert pager.current_page == 2

    asyncio.run(run())


def test_caller_arguments_are_forwarded_before_options():
    async def run():
        fetch, calls = _paged_fetch([{"items": [], "has_more": False}])
        pager = trip_paginator()
        await pager.load_first_page(fetch, "user-1", "paris")

        assert calls[0][:2] == ("user-1", "paris")
        assert calls[0][2].cursor is None
        assert calls[0][2].start_index == 0

    asyncio.run(run())


def test_first_page_failure_records_message_and_clears_items():
    async def run():
        pager = trip_paginator()
        fetch = AsyncMock(side_effect=RuntimeError("network down"))
        await pager.load_first_page(fetch)

        assert pager.error == "network down"
        assert pager.items == []
        assert pager.loading is False
        assert pager.has_more is False
        assert pager.status == "errored"

    asyncio.run(run())


def test_next_page_failure_keeps_loaded_rows():
    async def run():
        pager = trip_paginator(page_size=3)
        ok = AsyncMock(return_value={"items": _rows("a", 3), "cursor": "a2", "has_more": True})
        await pager.load_first_page(ok)

        failing = AsyncMock(side_effect=RuntimeError())
        await pager.load_next_page(failing)

        assert [row["id"] for row in pager.items] == ["a0", "a1", "a2"]
        assert pager.error == "Failed to load more data"
        assert pager.has_more is True
        assert pager.cursor == "a2"
        assert pager.loading is False

    asyncio.run(run())


def test_next_page_is_noop_without_more_rows():
    async def run():
        pager = trip_paginator()
        fetch = AsyncMock(return_value={"items": _rows("a", 2), "has_more": False})
        await pager.load_first_page(fetch)
        await pager.load_next_page(fetch)

        assert fetch.await_count == 1

    asyncio.run(run())


def test_concurrent_next_page_calls_fetch_once():
    async def run():
        calls = []

        async def fetch(options):
            calls.append(options)
            await asyncio.sleep(0)
            return {"items": _rows(f"p{len(calls)}-", 2), "cursor": f"c{len(calls)}", "has_more": True}

        pager = trip_paginator(page_size=2)
        await pager.load_first_page(fetch)
        await asyncio.gather(pager.load_next_page(fetch), pager.load_next_page(fetch))

        assert len(calls) == 2
        assert pager.total_loaded == 4

    asyncio.run(run())


def test_first_page_is_idempotent():
    async def run():
        fetch = AsyncMock(return_value={"items": _rows("a", 4), "cursor": "a3", "has_more": True})
        pager = trip_paginator()
        await pager.load_first_page(fetch)
        once = list(pager.items)
        await pager.refresh(fetch)

        assert pager.items == once
        assert pager.total_loaded == 4

    asyncio.run(run())


def test_superseded_first_page_result_is_discarded():
    async def run():
        gate = asyncio.Event()

        async def slow(options):
            await gate.wait()
            return {"items": [{"id": "stale"}], "has_more": False}

        async def fast(options):
            return {"items": [{"id": "fresh"}], "cursor": "f", "has_more": True}

        pager = trip_paginator()
        slow_task = asyncio.create_task(pager.load_first_page(slow))
        await asyncio.sleep(0)
        await pager.load_first_page(fast)
        gate.set()
        await slow_task

        assert [row["id"] for row in pager.items] == ["fresh"]
        assert pager.cursor == "f"
        assert pager.loading is False

    asyncio.run(run())


def test_clear_discards_in_flight_load():
    async def run():
        gate = asyncio.Event()

        async def slow(options):
            await gate.wait()
            return {"items": _rows("a", 2), "has_more": True}

        pager = trip_paginator()
        task = asyncio.create_task(pager.load_first_page(slow))
        await asyncio.sleep(0)
        pager.clear()
        gate.set()
        await task

        assert pager.items == []
        assert pager.status == "idle"
        assert pager.loading is False

    asyncio.run(run())


def test_update_page_size_clamps_and_fetches_once_per_call():
    async def run():
        fetch = AsyncMock(return_value={"items": [], "has_more": False})
        pager = Paginator(page_size=10, max_page_size=50)

        await pager.update_page_size(5, fetch)
        await pager.update_page_size(5, fetch)
        assert fetch.await_count == 2
        assert all(call.args[-1].page_size == 5 for call in fetch.await_args_list)

        await pager.update_page_size(500)
        assert pager.page_size == 50
        await pager.update_page_size(0)
        assert pager.page_size == 1
        assert fetch.await_count == 2

    asyncio.run(run())


def test_plain_function_and_camel_case_payload_are_accepted():
    async def run():
        def fetch(user_id, options):
            return {
                "trips": _rows("t", 2),
                "lastDocument": "t1",
                "hasMore": True,
                "totalRetrieved": 2,
            }

        pager = trip_paginator()
        await pager.load_first_page(fetch, "user-1")

        assert pager.total_loaded == 2
        assert pager.cursor == "t1"
        assert pager.has_more is True

    asyncio.run(run())


def test_index_mode_tracks_start_index_and_total():
    async def run():
        rows = _rows("x", 5)
        seen = []

        def fetch(trip_id, options):
            seen.append((trip_id, options.start_index, options.cursor))
            start = options.start_index
            chunk = rows[start:start + options.page_size]
            return {
                "activities": chunk,
                "nextStartIndex": start + len(chunk),
                "hasMore": start + len(chunk) < len(rows),
                "totalActivities": len(rows),
            }

        pager = activity_paginator(page_size=2)
        await pager.load_first_page(fetch, "trip-1")
        await pager.load_next_page(fetch, "trip-1")
        await pager.load_next_page(fetch, "trip-1")

        assert [s[1] for s in seen] == [0, 2, 4]
        assert all(s[2] is None for s in seen)
        assert pager.items == rows
        assert pager.total_available == 5
        assert pager.has_more is False
        assert pager.current_page == 3

    asyncio.run(run())


def test_prepend_item_bumps_counters():
    async def run():
        pager = trip_paginator()
        await pager.load_first_page(AsyncMock(return_value={"items": _rows("a", 3), "has_more": False}))
        pager.prepend_item({"id": "x"})

        assert pager.total_loaded == 4
        assert pager.items[0]["id"] == "x"
        assert pager.total_available is None

    asyncio.run(run())


def test_update_and_remove_by_id():
    state = ListState(items=_rows("a", 3), total_loaded=3, total_available=1)
    pager = Paginator(state=state)

    assert pager.update_item("a1", {"name": "Renamed"}) is True
    assert pager.items[1] == {"id": "a1", "name": "Renamed"}

    assert pager.remove_item("a1") is True
    assert [row["id"] for row in pager.items] == ["a0", "a2"]
    assert pager.total_loaded == 2
    assert pager.total_available == 0

    assert pager.remove_item("a0") is True
    assert pager.total_available == 0


def test_update_after_remove_is_noop():
    pager = Paginator(state=ListState(items=_rows("a", 2), total_loaded=2))
    pager.remove_item("a0")

    assert pager.update_item("a0", {"name": "ghost"}) is False
    assert pager.remove_item("a0") is False
    assert pager.total_loaded == 1


def test_update_item_supports_models_dataclasses_and_custom_id_field():
    @dataclass
    class Row:
        key: str
        title: str

    louvre = Activity(id="a", name="Louvre", start_time="10:00", end_time="12:00")
    models = Paginator(state=ListState(items=[louvre], total_loaded=1))
    models.update_item("a", {"name": "Musee d'Orsay"})
    assert models.items[0].name == "Musee d'Orsay"

    rows = Paginator(state=ListState(items=[Row("k1", "old")], total_loaded=1))
    rows.update_item("k1", {"title": "new"}, id_field="key")
    assert rows.items[0] == Row("k1", "new")


def test_clear_resets_to_idle():
    async def run():
        pager = activity_paginator()
        fetch = AsyncMock(side_effect=RuntimeError("boom"))
        await pager.load_first_page(fetch)
        pager.clear()

        assert pager.items == []
        assert pager.has_more is True
        assert pager.error is None
        assert pager.total_available is None
        assert pager.is_first_page is True
        assert pager.status == "idle"

    asyncio.run(run())


def test_should_load_more_near_end_of_list():
    state = ListState(page_size=10, items=_rows("a", 10), total_loaded=10)

    assert state.load_more_threshold == 5
    assert state.should_load_more(3) is False
    assert state.should_load_more(4) is True

    state.has_more = False
    assert state.should_load_more(9) is False


def test_page_size_is_clamped_on_construction():
    assert ListState(page_size=0).page_size == 1
    assert ListState(page_size=80, max_page_size=50).page_size == 50


def test_assigning_through_paginator_writes_the_state():
    async def run():
        fetch = AsyncMock(return_value={"items": [], "has_more": False})
        pager = Paginator(page_size=10, max_page_size=50)

        pager.page_size = 5
        assert pager.state.page_size == 5
        assert "page_size" not in vars(pager)

        await pager.load_first_page(fetch)
        assert fetch.await_args.args[-1].page_size == 5

        pager.page_size = 500
        assert pager.state.page_size == 50

        pager.has_more = False
        assert pager.state.can_load_more is False

    asyncio.run(run())
