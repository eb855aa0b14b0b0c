"""Bulk record fetch over the Kintone page-size ceiling.

Two strategies are provided:

- ``fetch_by_offset`` appends ``limit``/``offset`` clauses to the caller's
  query and walks forward a page at a time. Simple, but Kintone refuses
  offsets above 10,000.
- ``fetch_by_id`` orders by ``$id`` and re-queries with ``$id > last_seen``.
  No offset limit, and records inserted during the walk cannot shift pages
  because ids only grow.

Both take a ``fetch_page`` callable that performs one ``records.json`` GET for
a full query string, so they can be exercised without any HTTP.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .errors import KintoneError, KintoneValidationError
from .models import RecordsPage, RecordsResult

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 500
ALL = -1

FetchPage = Callable[[str], RecordsPage]


def _join(*parts: str) -> str:
    return " ".join(p.strip() for p in parts if p and p.strip())


def _fetch(fetch_page: FetchPage, query: str) -> RecordsPage:
    try:
        return fetch_page(query)
    except KintoneError as exc:
        logger.debug("Page request failed for query %r: %s", query, exc)
        raise


def fetch_by_offset(
    fetch_page: FetchPage,
    query: str = "",
    *,
    limit: int = ALL,
    page_size: int = MAX_PAGE_SIZE,
) -> RecordsResult:
    """Fetch up to ``limit`` records (``-1`` for all) using limit/offset paging."""
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise KintoneValidationError(
            code="kintone", message=f"page_size must be between 1 and {MAX_PAGE_SIZE}"
        )
    if limit < ALL:
        raise KintoneValidationError(
            code="kintone", message="limit must be -1 (all) or a non-negative integer"
        )

    result = RecordsResult()
    if limit == 0:
        return result

    offset = 0
    while True:
        size = page_size if limit == ALL else min(page_size, limit - len(result.records))
        page = _fetch(fetch_page, _join(query, f"limit {size}", f"offset {offset}"))
        result.records.extend(page.records)
        if page.total_count is not None:
            result.total_count = page.total_count
        offset += size

        if result.total_count is not None and len(result.records) >= result.total_count:
            break
        if limit != ALL and len(result.records) >= limit:
            break
        if len(page.records) < size:
            if result.total_count is not None:
                logger.warning(
                    "Short page at offset %d: have %d of %d records",
                    offset - size,
                    len(result.records),
                    result.total_count,
                )
            break
    return result


def fetch_by_id(
    fetch_page: FetchPage,
    query: str = "",
    *,
    page_size: int = MAX_PAGE_SIZE,
) -> RecordsResult:
    """Fetch every record matching ``query`` (a condition, no ``order by``) by ascending ``$id``."""
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise KintoneValidationError(
            code="kintone", message=f"page_size must be between 1 and {MAX_PAGE_SIZE}"
        )

    result = RecordsResult()
    last_id = 0
    while True:
        condition = f"$id > {last_id}"
        if query.strip():
            condition = f"({query.strip()}) and {condition}"
        page = _fetch(fetch_page, _join(condition, "order by $id asc", f"limit {page_size}"))

        # Later pages report only what remains above last_id.
        if result.total_count is None:
            result.total_count = page.total_count
        result.records.extend(page.records)

        if not page.records:
            if result.total_count is not None and len(result.records) < result.total_count:
                logger.warning(
                    "Empty page after $id %d: have %d of %d records",
                    last_id,
                    len(result.records),
                    result.total_count,
                )
            break
        if result.total_count is None or len(result.records) >= result.total_count:
            break
        last_id = int(page.records[-1]["$id"]["value"])
    return result
