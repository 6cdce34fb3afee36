from datetime import date, datetime

from lexis.application.query_composer import (
    compose_filter_body,
    compose_query,
    encode_query,
    stringify,
)
from lexis.domain.models import FilterSpec, PageSpec, SortSpec


def test_empty_filters_yield_only_cursor():
    pairs = compose_query(FilterSpec(), PageSpec(page=1, size=20))
    assert pairs == [("page", "1"), ("size", "20")]


def test_no_arguments_is_empty():
    assert compose_query() == []


def test_absent_values_are_omitted():
    filters = FilterSpec(search="", letter=None, familiarity_min=2)
    assert compose_query(filters) == [("familiarity_min", "2")]


def test_tag_ids_repeat_in_order():
    pairs = compose_query(FilterSpec(tag_ids=(3, 1, 2)), PageSpec(page=1, size=20))
    assert pairs == [
        ("tag_ids", "3"),
        ("tag_ids", "1"),
        ("tag_ids", "2"),
        ("page", "1"),
        ("size", "20"),
    ]


def test_empty_tag_list_omitted():
    assert compose_query(FilterSpec(tag_ids=())) == []


def test_false_is_kept():
    """is_hard=False is a constraint, not an absent value."""
    assert compose_query(FilterSpec(is_hard=False)) == [("is_hard", "false")]
    assert compose_query(FilterSpec(is_hard=True)) == [("is_hard", "true")]


def test_dates_render_as_iso_day():
    filters = FilterSpec(
        created_after=date(2024, 1, 5),
        due_before=datetime(2024, 2, 1, 13, 45),
        last_review_after="2023-12-31",
    )
    assert compose_query(filters) == [
        ("created_after", "2024-01-05"),
        ("last_review_after", "2023-12-31"),
        ("due_before", "2024-02-01"),
    ]


def test_inverted_familiarity_range_passes_through():
    pairs = compose_query(FilterSpec(familiarity_min=4, familiarity_max=2))
    assert pairs == [("familiarity_min", "4"), ("familiarity_max", "2")]


def test_zero_cursor_fields_omitted():
    assert compose_query(page=PageSpec(page=0, size=0)) == []


def test_sort_only_when_requested():
    pairs = compose_query(FilterSpec(search="run"), sort=SortSpec("word", "asc"))
    assert pairs == [("search", "run"), ("sort_by", "word"), ("sort_order", "asc")]


def test_field_order_is_canonical():
    filters = FilterSpec(due_before="2024-03-01", search="a", is_hard=True, letter="b")
    keys = [k for k, _ in compose_query(filters)]
    assert keys == ["search", "letter", "is_hard", "due_before"]


def test_set_values_are_sorted():
    filters = FilterSpec(tag_ids=frozenset({9, 2, 5}))
    assert [v for _, v in compose_query(filters)] == ["2", "5", "9"]


def test_encode_query_keeps_repeats():
    pairs = compose_query(FilterSpec(search="big cat", tag_ids=(1, 2)), PageSpec(page=2, size=10))
    assert encode_query(pairs) == "search=big+cat&tag_ids=1&tag_ids=2&page=2&size=10"


def test_stringify():
    assert stringify(True) == "true"
    assert stringify(42) == "42"
    assert stringify(date(2024, 5, 1)) == "2024-05-01"


def test_filter_body_keeps_json_types():
    filters = FilterSpec(
        search="",
        tag_ids=(4, 2),
        is_hard=False,
        familiarity_min=2,
        created_after=date(2024, 1, 5),
    )
    assert compose_filter_body(filters) == {
        "tag_ids": [4, 2],
        "is_hard": False,
        "familiarity_min": 2,
        "created_after": "2024-01-05",
    }
    assert list(compose_filter_body(filters)) == [
        "tag_ids",
        "is_hard",
        "familiarity_min",
        "created_after",
    ]


def test_filter_body_empty():
    assert compose_filter_body(None) == {}
    assert compose_filter_body(FilterSpec(tag_ids=())) == {}
