"""
Pagination and sort parameters shared by every listing operation.

Sort keys are never taken verbatim from request input: each ``Sort`` member
maps through ``SORT_FIELDS`` to the graph property it orders by, and each
entity type only accepts the members in its allow-list.  Because the
property name and direction are spliced into query text (Cypher cannot bind
them as parameters) validation has to happen here, before any query is built.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .config import DEFAULT_LIMIT, DEFAULT_SKIP
from .errors import InvalidParameterError

logger = logging.getLogger(__name__)


class Sort(Enum):
    TITLE = "title"
    RELEASED = "released"
    IMDB_RATING = "imdbRating"
    NAME = "name"
    RATING = "rating"
    TIMESTAMP = "timestamp"


class Order(Enum):
    ASC = "ASC"
    DESC = "DESC"


# Sort key -> graph property identifier spliced into ORDER BY
SORT_FIELDS: dict[Sort, str] = {
    Sort.TITLE: "title",
    Sort.RELEASED: "released",
    Sort.IMDB_RATING: "imdbRating",
    Sort.NAME: "name",
    Sort.RATING: "rating",
    Sort.TIMESTAMP: "timestamp",
}

# Per-entity allow-lists
MOVIE_SORTS = frozenset({Sort.TITLE, Sort.RELEASED, Sort.IMDB_RATING})
PERSON_SORTS = frozenset({Sort.NAME})
RATING_SORTS = frozenset({Sort.TIMESTAMP, Sort.RATING})


@dataclass(frozen=True)
class Params:
    """
    Validated pagination/sort request.

    ``sort`` and ``order`` may be left as None so each operation can apply
    its own default (people sort by name, ratings newest first, movies by
    title ascending).
    """

    query: str | None = None
    sort: Sort | None = None
    order: Order | None = None
    limit: int = DEFAULT_LIMIT
    skip: int = DEFAULT_SKIP

    def __post_init__(self):
        for name in ("limit", "skip"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidParameterError(f"{name} must be an integer", name, value)
            if value < 0:
                raise InvalidParameterError(f"{name} must be non-negative", name, value)
        if self.sort is not None and not isinstance(self.sort, Sort):
            raise InvalidParameterError(f"Unknown sort key: {self.sort!r}", "sort", self.sort)
        if self.order is not None and not isinstance(self.order, Order):
            raise InvalidParameterError(f"Unknown sort order: {self.order!r}", "order", self.order)

    def sort_field(self, allowed: frozenset[Sort], default: Sort = Sort.TITLE) -> str:
        """Resolve the property to order by, rejecting keys outside ``allowed``."""
        sort = self.sort or default
        if sort not in allowed:
            raise InvalidParameterError(
                f"Cannot sort by '{sort.value}' here; expected one of "
                f"{sorted(s.value for s in allowed)}",
                "sort",
                sort.value,
            )
        return SORT_FIELDS[sort]

    def direction(self, default: Order = Order.ASC) -> str:
        return (self.order or default).value

    def require_unsorted(self) -> None:
        """Reject sort/order for operations with a fixed ranking."""
        for name in ("sort", "order"):
            value = getattr(self, name)
            if value is not None:
                raise InvalidParameterError(
                    f"This ranking is ordered by score; '{name}' is not accepted",
                    name,
                    value.value,
                )

    def bounds(self) -> dict[str, int]:
        """Skip/limit as query parameters."""
        return {"skip": self.skip, "limit": self.limit}


def _parse_int(name: str, raw, default: int) -> int:
    if raw is None or raw == "":
        return default
    if isinstance(raw, bool):
        raise InvalidParameterError(f"{name} must be an integer", name, raw)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidParameterError(f"{name} must be an integer", name, raw) from None


def parse_params(
    query: str | None = None,
    sort: str | Sort | None = None,
    order: str | Order | None = None,
    limit=None,
    skip=None,
) -> Params:
    """
    Build ``Params`` from raw client values (strings as they arrive from a
    query string or command line).

    Sort keys match either the member name (``imdb_rating``) or the property
    name (``imdbRating``); order is case-insensitive.
    """
    if isinstance(sort, str) and sort:
        sort = _lookup_sort(sort)
    elif not sort:
        sort = None

    if isinstance(order, str) and order:
        try:
            order = Order[order.strip().upper()]
        except KeyError:
            raise InvalidParameterError(f"Unknown sort order: {order!r}", "order", order) from None
    elif not order:
        order = None

    return Params(
        query=query or None,
        sort=sort,
        order=order,
        limit=_parse_int("limit", limit, DEFAULT_LIMIT),
        skip=_parse_int("skip", skip, DEFAULT_SKIP),
    )


def _lookup_sort(raw: str) -> Sort:
    key = raw.strip()
    for sort in Sort:
        if key == sort.value or key.upper() == sort.name:
            return sort
    logger.warning(f"Rejected sort key '{raw}'")
    raise InvalidParameterError(f"Unknown sort key: {raw!r}", "sort", raw)
