"""
Query composer for catalog item listings.

Maps a FilterSpec plus optional PageSpec/SortSpec into a canonical, ordered
list of (key, value) pairs. This is a pure computation module with no I/O;
it is safe to call on every keystroke for live previews.
"""

from collections.abc import Iterable
from dataclasses import fields
from datetime import date, datetime
from typing import Any
from urllib.parse import urlencode

from lexis.domain.models import FilterSpec, PageSpec, SortSpec

QueryPairs = list[tuple[str, str]]


def compose_query(
    filters: FilterSpec | None = None,
    page: PageSpec | None = None,
    sort: SortSpec | None = None,
) -> QueryPairs:
    """
    Build the canonical request descriptor for a filtered listing.

    A field is omitted when its value is None or an empty string. Sequence
    values (tag ids) become one pair per element, in order; an empty
    sequence is omitted. No semantic validation is performed, so a
    familiarity_min above familiarity_max is passed through as given.

    Args:
        filters: Filter constraints; None means no constraints.
        page: Pagination cursor; None omits page/size.
        sort: Sort selection; None omits sort_by/sort_order.

    Returns:
        Ordered (key, value) pairs. A key repeats only for sequence fields.
    """
    pairs: QueryPairs = []

    if filters is not None:
        for f in fields(filters):
            _append(pairs, f.name, getattr(filters, f.name))

    if page is not None:
        # page 0 / size 0 are not meaningful cursors
        if page.page:
            _append(pairs, "page", page.page)
        if page.size:
            _append(pairs, "size", page.size)

    if sort is not None:
        _append(pairs, "sort_by", sort.sort_by)
        _append(pairs, "sort_order", sort.sort_order)

    return pairs


def compose_filter_body(filters: FilterSpec | None) -> dict[str, Any]:
    """
    JSON form of a FilterSpec for request bodies.

    Same omission rule and field order as compose_query, but values keep
    their JSON types: booleans and numbers stay native, tag ids stay a list,
    dates become YYYY-MM-DD.
    """
    body: dict[str, Any] = {}
    if filters is None:
        return body
    for f in fields(filters):
        value = getattr(filters, f.name)
        if _is_absent(value):
            continue
        if isinstance(value, (list, tuple, set, frozenset)):
            elements = [v for v in _ordered(value) if not _is_absent(v)]
            if elements:
                body[f.name] = elements
            continue
        if isinstance(value, date):
            value = stringify(value)
        body[f.name] = value
    return body


def encode_query(pairs: QueryPairs) -> str:
    """URL-encode composed pairs, preserving order and repeated keys."""
    return urlencode(pairs)


def _append(pairs: QueryPairs, key: str, value: Any) -> None:
    if _is_absent(value):
        return
    if isinstance(value, (list, tuple, set, frozenset)):
        for element in _ordered(value):
            if not _is_absent(element):
                pairs.append((key, stringify(element)))
        return
    pairs.append((key, stringify(value)))


def _is_absent(value: Any) -> bool:
    return value is None or value == ""


def _ordered(values: Iterable[Any]) -> Iterable[Any]:
    if isinstance(values, (set, frozenset)):
        return sorted(values)
    return values


def stringify(value: Any) -> str:
    """
    Locale-free wire form of a scalar.

    bool -> "true"/"false", int -> base 10, date/datetime -> YYYY-MM-DD.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)
