from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from dcprov.exceptions import InvalidFilterSyntax, InvalidRange, InvalidSortSyntax

FILTER_SEPARATOR = "|"


class SortDirection(str, Enum):
    asc = "asc"
    desc = "desc"


class FilterExpr(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    operator: str
    value: str

    def __str__(self):
        return f"{self.field}:{self.operator}:{self.value}"


class SortExpr(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    direction: SortDirection

    def __str__(self):
        return f"{self.field}:{self.direction.value}"


class QuerySpec(BaseModel):
    """Filter, sort and paging parameters for one list request."""

    model_config = ConfigDict(frozen=True)

    filters: Tuple[FilterExpr, ...] = ()
    sort: Optional[SortExpr] = None
    offset: Optional[int] = None
    limit: Optional[int] = None
    fetch_all: bool = False

    def to_params(self, offset: int = None, limit: int = None) -> Dict[str, Union[str, int]]:
        """Serialize to query string parameters, overriding offset/limit if given."""
        params = {}
        offset = self.offset if offset is None else offset
        limit = self.limit if limit is None else limit
        if offset is not None:
            params["offset"] = offset
        if limit is not None:
            params["limit"] = limit
        if self.filters:
            params["filter"] = FILTER_SEPARATOR.join(str(f) for f in self.filters)
        if self.sort:
            params["sort"] = str(self.sort)
        return params


def parse_filter(token: str) -> FilterExpr:
    parts = token.split(":", 2)
    if len(parts) < 3:
        raise InvalidFilterSyntax(token)
    field, operator, value = parts
    if not field.strip():
        raise InvalidFilterSyntax(token, "empty field")
    if not operator.strip():
        raise InvalidFilterSyntax(token, "empty operator")
    return FilterExpr(field=field.strip(), operator=operator.strip(), value=value)


def _is_filter(token: str) -> bool:
    parts = token.split(":", 2)
    return len(parts) == 3 and bool(parts[0].strip()) and bool(parts[1].strip())


def split_filters(raw: str) -> List[str]:
    """Split a raw filter on ``|`` where the next piece is a filter of its own.

    Any other ``|`` stays in the preceding value, so ``name:eq:A|B`` is a
    single filter.
    """
    tokens = []
    for piece in raw.split(FILTER_SEPARATOR):
        if tokens and not _is_filter(piece):
            tokens[-1] = f"{tokens[-1]}{FILTER_SEPARATOR}{piece}"
        else:
            tokens.append(piece)
    return tokens


def parse_sort(token: str) -> SortExpr:
    parts = token.split(":")
    if len(parts) != 2 or not parts[0].strip():
        raise InvalidSortSyntax(token)
    field, direction = parts
    try:
        direction = SortDirection(direction.strip().lower())
    except ValueError:
        raise InvalidSortSyntax(token)
    return SortExpr(field=field.strip(), direction=direction)


def _parse_int(name: str, raw, minimum: int) -> Optional[int]:
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise InvalidRange(f"{name} must be an integer, got {raw!r}")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise InvalidRange(f"{name} must be an integer, got {raw!r}")
    if value < minimum:
        qualifier = "positive" if minimum > 0 else "non-negative"
        raise InvalidRange(f"{name} must be {qualifier}, got {value}")
    return value


def build_query(
    offset=None,
    limit=None,
    filters: Iterable[str] = (),
    sort: Optional[str] = None,
    all: bool = False,
) -> QuerySpec:
    """Build a QuerySpec from raw CLI parameters.

    Each raw filter has the form ``field:operator:value``; the value is
    everything after the second colon. A raw filter may carry several
    filters separated by ``|`` (see ``split_filters``). Everything is
    validated before the query is built so a bad token never yields a
    partial query.

    With ``all`` set, ``limit`` is only the page size for each request and
    ``offset`` the starting point.
    """
    parsed_offset = _parse_int("offset", offset, 0)
    parsed_limit = _parse_int("limit", limit, 1)

    parsed_filters = []
    for raw in filters or ():
        for token in split_filters(raw):
            parsed_filters.append(parse_filter(token))

    parsed_sort = parse_sort(sort) if sort else None

    return QuerySpec(
        filters=tuple(parsed_filters),
        sort=parsed_sort,
        offset=parsed_offset,
        limit=parsed_limit,
        fetch_all=bool(all),
    )
