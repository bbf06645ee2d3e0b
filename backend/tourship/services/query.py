"""
Shared listing helpers: pagination, search regexes, sort selection and
the page query itself.
"""

import asyncio
import math
import re
from dataclasses import dataclass
from datetime import datetime

from fastapi import Query

from tourship.models.common import naive_utc

MAX_LIMIT = 100


@dataclass
class PageParams:
    page: int = 1
    limit: int = 10

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_LIMIT),
) -> PageParams:
    return PageParams(page=page, limit=limit)


def pagination_meta(page: int, limit: int, total: int) -> dict:
    pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
        "hasNext": page < pages,
        "hasPrev": page > 1,
    }


def contains(text: str) -> dict:
    """Case-insensitive substring match with the user input escaped."""
    return {"$regex": re.escape(text.strip()), "$options": "i"}


def exact_ci(text: str) -> dict:
    return {"$regex": f"^{re.escape(text.strip())}$", "$options": "i"}


def search_clause(text: str | None, *fields: str) -> dict:
    if not text or not text.strip():
        return {}
    return {"$or": [{field: contains(text)} for field in fields]}


def resolve_sort(sort_by: str | None, options: dict, default: str) -> list[tuple[str, int]]:
    return options.get(sort_by or default, options[default])


def date_range(start: datetime | None = None, end: datetime | None = None) -> dict | None:
    clause = {}
    if start:
        clause["$gte"] = naive_utc(start)
    if end:
        clause["$lte"] = naive_utc(end)
    return clause or None


async def find_page(
    collection,
    query: dict,
    sort: list[tuple[str, int]],
    params: PageParams,
    projection: dict | None = None,
) -> tuple[list[dict], dict]:
    """Run the page query and the count together; returns (docs, pagination)."""
    cursor = collection.find(query, projection).sort(sort).skip(params.skip).limit(params.limit)
    docs, total = await asyncio.gather(
        cursor.to_list(length=params.limit),
        collection.count_documents(query),
    )
    return docs, pagination_meta(params.page, params.limit, total)


def paginate_list(items: list, params: PageParams) -> tuple[list, dict]:
    """Page over an in-memory list, for embedded arrays."""
    total = len(items)
    return items[params.skip : params.skip + params.limit], pagination_meta(params.page, params.limit, total)
