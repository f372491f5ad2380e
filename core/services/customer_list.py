from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import List, Sequence, Union

from pydantic import BaseModel

from core.models.customer import Customer

ITEMS_PER_PAGE = 10

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class SortOption(str, Enum):
    RECENT = "recent"
    OLDEST = "oldest"
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"

    @property
    def label(self) -> str:
        return SORT_LABELS[self]


SORT_LABELS = {
    SortOption.RECENT: "Recently Added",
    SortOption.OLDEST: "Oldest First",
    SortOption.NAME_ASC: "Name (A-Z)",
    SortOption.NAME_DESC: "Name (Z-A)",
}


class Page(BaseModel):
    items: List[Customer]
    page: int
    total_pages: int
    total: int


def _created(c: Customer) -> datetime:
    try:
        dt = datetime.fromisoformat(c.created_at)
    except ValueError:
        return _EPOCH
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def filter_customers(customers: Sequence[Customer], query: str) -> List[Customer]:
    """Nom et email sans casse, téléphone en sous-chaîne brute."""
    q = (query or "").strip()
    if not q:
        return list(customers)
    q_low = q.lower()
    return [
        c for c in customers
        if q_low in c.full_name.lower()
        or (c.email and q_low in c.email.lower())
        or (c.phone and q in c.phone)
    ]


def sort_customers(customers: Sequence[Customer], sort_by: Union[SortOption, str] = SortOption.RECENT) -> List[Customer]:
    sort_by = SortOption(sort_by)
    if sort_by is SortOption.NAME_ASC:
        return sorted(customers, key=lambda c: c.full_name.casefold())
    if sort_by is SortOption.NAME_DESC:
        return sorted(customers, key=lambda c: c.full_name.casefold(), reverse=True)
    return sorted(customers, key=_created, reverse=sort_by is SortOption.RECENT)


def paginate(items: Sequence[Customer], page: int = 1, per_page: int = ITEMS_PER_PAGE) -> Page:
    total = len(items)
    total_pages = math.ceil(total / per_page) if per_page > 0 else 0
    page = min(max(1, page), max(1, total_pages))
    start = (page - 1) * per_page
    return Page(items=list(items[start:start + per_page]), page=page, total_pages=total_pages, total=total)


def build_listing(
    customers: Sequence[Customer],
    query: str = "",
    sort_by: Union[SortOption, str] = SortOption.RECENT,
    page: int = 1,
    per_page: int = ITEMS_PER_PAGE,
) -> Page:
    return paginate(sort_customers(filter_customers(customers, query), sort_by), page, per_page)


def summary_text(page: Page) -> str:
    if page.total == 0:
        return ""
    plural = "s" if page.total != 1 else ""
    return f"Showing {len(page.items)} of {page.total} customer{plural}"
