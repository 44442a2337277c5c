# reselec/client/listing.py

"""
List screens: filters, sort, date range and server-driven paging.

The controller keeps only the current page. Any change of the query triggers a
refetch; responses that arrive after a newer request was issued (or after the
screen was closed) are discarded.
"""

import logging
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .api import ApiClient
from .errors import ReselecClientError

logger = logging.getLogger(__name__)


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class ListQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    search: Optional[str] = None
    filters: Dict[str, Any] = Field(default_factory=dict)
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    sort_by: Optional[str] = None
    sort_order: SortOrder = SortOrder.DESC

    def to_params(self) -> Dict[str, Any]:
        """Query string parameters of the collection endpoint; empty values are left out."""
        params: Dict[str, Any] = {"page": self.page, "limit": self.limit}
        if self.search:
            params["search"] = self.search
        for name, value in self.filters.items():
            if value is None or value == "":
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            elif isinstance(value, Enum):
                value = value.value
            params[name] = value
        if self.date_from:
            params["dateFrom"] = self.date_from.isoformat()
        if self.date_to:
            params["dateTo"] = self.date_to.isoformat()
        if self.sort_by:
            params["sortBy"] = self.sort_by
            params["sortOrder"] = self.sort_order.value
        return params

    def toggle_sort(self, column: str) -> "ListQuery":
        """
        Same column: flips the direction. Another column: sorts it ascending.
        Either way the page goes back to 1.
        """
        if column == self.sort_by:
            order = SortOrder.ASC if self.sort_order == SortOrder.DESC else SortOrder.DESC
        else:
            order = SortOrder.ASC
        return self.model_copy(update={"sort_by": column, "sort_order": order, "page": 1})

    def with_search(self, search: Optional[str]) -> "ListQuery":
        return self.model_copy(update={"search": (search or "").strip() or None, "page": 1})

    def with_filter(self, name: str, value: Any) -> "ListQuery":
        filters = dict(self.filters)
        if value is None:
            filters.pop(name, None)
        else:
            filters[name] = value
        return self.model_copy(update={"filters": filters, "page": 1})

    def with_date_range(self, date_from: Optional[date], date_to: Optional[date]) -> "ListQuery":
        if date_from and date_to and date_from > date_to:
            raise ValueError("date_from must be before date_to")
        return self.model_copy(update={"date_from": date_from, "date_to": date_to, "page": 1})

    def with_page(self, page: int) -> "ListQuery":
        if page < 1:
            raise ValueError("page must be >= 1")
        return self.model_copy(update={"page": page})

    def with_limit(self, limit: int) -> "ListQuery":
        return ListQuery.model_validate({**self.model_dump(), "limit": limit, "page": 1})


class ListController:
    """
    Controller of one collection screen (`resource` is the path, e.g. "clients").
    """

    def __init__(
        self,
        api: ApiClient,
        resource: str,
        query: Optional[ListQuery] = None,
        parse_item: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ):
        self.api = api
        self.resource = resource
        self.query = query or ListQuery()
        self.parse_item = parse_item
        self.items: List[Any] = []
        self.total = 0
        self.pages = 0
        self.loading = False
        self.error: Optional[ReselecClientError] = None
        self._generation = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def page(self) -> int:
        return self.query.page

    @property
    def has_next(self) -> bool:
        return self.query.page < self.pages

    @property
    def has_previous(self) -> bool:
        return self.query.page > 1

    async def refresh(self) -> bool:
        """
        Fetches the page described by the current query.
        Returns False when the response was discarded or the request failed.
        """
        if self._closed:
            return False
        self._generation += 1
        generation = self._generation
        self.loading = True
        try:
            payload = await self.api.list_resource(self.resource, self.query.to_params())
        except ReselecClientError as e:
            if generation != self._generation:
                return False
            self.error = e
            self.loading = False
            logger.info("Loading %s failed: %s", self.resource, e)
            return False

        if generation != self._generation:
            logger.debug("Discarding stale %s page (request %d, current %d)", self.resource, generation, self._generation)
            return False

        pagination = payload.get("pagination", {})
        data = payload.get("data", [])
        self.items = [self.parse_item(item) for item in data] if self.parse_item else list(data)
        self.total = pagination.get("total", len(data))
        self.pages = pagination.get("pages", 1 if data else 0)
        self.error = None
        self.loading = False
        return True

    async def set_query(self, query: ListQuery) -> bool:
        self.query = query
        return await self.refresh()

    async def search(self, text: Optional[str]) -> bool:
        return await self.set_query(self.query.with_search(text))

    async def set_filter(self, name: str, value: Any) -> bool:
        return await self.set_query(self.query.with_filter(name, value))

    async def set_date_range(self, date_from: Optional[date], date_to: Optional[date]) -> bool:
        return await self.set_query(self.query.with_date_range(date_from, date_to))

    async def toggle_sort(self, column: str) -> bool:
        return await self.set_query(self.query.toggle_sort(column))

    async def go_to_page(self, page: int) -> bool:
        return await self.set_query(self.query.with_page(page))

    async def next_page(self) -> bool:
        if not self.has_next:
            return False
        return await self.go_to_page(self.query.page + 1)

    async def previous_page(self) -> bool:
        if not self.has_previous:
            return False
        return await self.go_to_page(self.query.page - 1)

    def close(self) -> None:
        """The screen is gone: pending responses will be ignored and no new request is sent."""
        self._closed = True
        self._generation += 1
        self.loading = False
