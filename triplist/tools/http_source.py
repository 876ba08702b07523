from typing import Any, Dict, Optional, Type
import logging
import os

import httpx
from pydantic import BaseModel

from triplist.config import API_BASE_URL, HTTP_TIMEOUT
from triplist.pagination import PageRequest
from triplist.schemas import Activity, PageResult, Trip

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_LIST_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False


class HttpPageSource:
    """
    Fetch functions backed by the trip-list HTTP service.

    Each method follows the paginator contract: caller arguments first, the
    ``PageRequest`` last. Transport and HTTP status errors propagate so the
    paginator records them as the list error.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.base_url = (base_url or API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else HTTP_TIMEOUT
        self.headers = {"User-Agent": "triplist/1.0", **(headers or {})}

    async def _get_page(
        self, path: str, params: Dict[str, Any], item_model: Type[BaseModel]
    ) -> PageResult:
        query = {k: v for k, v in params.items() if v is not None}
        async with httpx.AsyncClient(timeout=self.timeout, headers=self.headers) as client:
            response = await client.get(f"{self.base_url}{path}", params=query)
            response.raise_for_status()
            data = response.json()

        page = PageResult.model_validate(data)
        page.items = [item_model.model_validate(item) for item in page.items]
        logger.info("GET %s returned %d items (has_more=%s)", path, len(page.items), page.has_more)
        return page

    async def trips(self, user_id: str, options: PageRequest) -> PageResult:
        return await self._get_page(
            f"/api/users/{user_id}/trips",
            {"page_size": options.page_size, "cursor": options.cursor},
            Trip,
        )

    async def search_trips(self, user_id: str, term: str, options: PageRequest) -> PageResult:
        return await self._get_page(
            f"/api/users/{user_id}/trips/search",
            {"q": term, "page_size": options.page_size, "cursor": options.cursor},
            Trip,
        )

    async def day_activities(self, trip_id: str, day_index: int, options: PageRequest) -> PageResult:
        return await self._get_page(
            f"/api/trips/{trip_id}/days/{day_index}/activities",
            {"page_size": options.page_size, "start_index": options.start_index},
            Activity,
        )
