# reselec/core/pagination.py

"""
Paged list responses and the shared list query parameters.

Every collection endpoint answers with
`{"data": [...], "pagination": {"page", "limit", "total", "pages"}}`.
"""

import math
from enum import Enum
from typing import Generic, List, Optional, Sequence, TypeVar

from fastapi import HTTPException, Query, status
from pydantic import BaseModel

from reselec.core.config import settings

T = TypeVar("T")


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class Page(BaseModel, Generic[T]):
    data: List[T]
    pagination: PageMeta


class PageParams(BaseModel):
    page: int = 1
    limit: int = 10
    search: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: SortOrder = SortOrder.DESC

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def order_desc(self) -> bool:
        return self.sort_order == SortOrder.DESC

    def order_field(self, allowed: dict, default: str) -> str:
        """
        Maps the public `sortBy` value to a model attribute. Unknown columns are rejected.
        """
        if self.sort_by is None:
            return default
        if self.sort_by not in allowed:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot sort by '{self.sort_by}'. Allowed: {', '.join(sorted(allowed))}",
            )
        return allowed[self.sort_by]


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: str = Query("DESC", alias="sortOrder"),
) -> PageParams:
    try:
        order = SortOrder(sort_order.upper())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="sortOrder must be ASC or DESC",
        )
    return PageParams(
        page=page,
        limit=limit,
        search=(search or "").strip() or None,
        sort_by=sort_by,
        sort_order=order,
    )


def build_page(items: Sequence[T], total: int, params: PageParams) -> dict:
    return {
        "data": list(items),
        "pagination": {
            "page": params.page,
            "limit": params.limit,
            "total": total,
            "pages": math.ceil(total / params.limit) if params.limit else 0,
        },
    }
