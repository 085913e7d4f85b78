from logging import getLogger
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from dcprov.exceptions import MalformedServerResponse, PageFetchError, TransportError
from dcprov.query import QuerySpec

DEFAULT_PAGE_SIZE = 500

logger = getLogger(__name__)

Record = Dict[str, Any]


class Page(BaseModel):
    items: List[Record]
    total: int
    # offset reported by the server; None means "as requested"
    offset: Optional[int] = None
    limit: Optional[int] = None


class PaginationResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    records: List[Record]
    error: Optional[Exception] = None

    @property
    def ok(self):
        return self.error is None


FetchPage = Callable[[int, int], Page]


def _collect(query: QuerySpec, fetch_page: FetchPage, records: List[Record], page_size: int):
    """Fetch into ``records`` in place so callers keep partial progress on error."""
    start = query.offset or 0
    limit = query.limit or page_size

    if not query.fetch_all:
        page = fetch_page(start, limit)
        records.extend(page.items)
        return

    offset = start
    expected = None
    last_offset = None
    page_index = 0
    while True:
        logger.debug(f"Fetching page {page_index} (offset={offset}, limit={limit})")
        try:
            page = fetch_page(offset, limit)
        except TransportError as e:
            raise PageFetchError(page_index, len(records), e) from e

        reported = offset if page.offset is None else page.offset
        if last_offset is not None and reported <= last_offset:
            raise MalformedServerResponse(
                f"Server returned non-increasing offset {reported} after {last_offset}",
                page_index,
                len(records),
            )
        if expected is None:
            expected = page.total
        elif page.total != expected:
            raise MalformedServerResponse(
                f"Server reported total {page.total}, first page reported {expected}",
                page_index,
                len(records),
            )

        received = len(records) + len(page.items)
        if received > max(expected - start, 0):
            raise MalformedServerResponse(
                f"Received {received} records but server reported total {expected}",
                page_index,
                len(records),
            )
        records.extend(page.items)
        if not page.items or len(records) >= expected - start:
            break

        last_offset = reported
        offset += len(page.items)
        page_index += 1

    logger.debug(f"Fetched {len(records)} records in {page_index + 1} page(s)")


def run(
    query: QuerySpec, fetch_page: FetchPage, page_size: int = DEFAULT_PAGE_SIZE
) -> List[Record]:
    """Return the records for ``query``, following every page when ``fetch_all`` is set.

    Records keep the server's order and are never deduplicated. Raises
    ``PageFetchError`` or ``MalformedServerResponse`` and discards any
    partial progress; use ``run_best_effort`` to keep it.
    """
    records = []
    _collect(query, fetch_page, records, page_size)
    return records


def run_best_effort(
    query: QuerySpec, fetch_page: FetchPage, page_size: int = DEFAULT_PAGE_SIZE
) -> PaginationResult:
    """Like ``run`` but returns the records accumulated before any failure."""
    records = []
    try:
        _collect(query, fetch_page, records, page_size)
    except (TransportError, MalformedServerResponse) as e:
        logger.debug(f"Pagination stopped after {len(records)} records: {e}")
        return PaginationResult(records=records, error=e)
    return PaginationResult(records=records)
