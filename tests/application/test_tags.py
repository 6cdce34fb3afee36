import pytest

from lexis.application.tags import TagSelection, generate_local_tag_id
from lexis.domain.errors import TransportError
from lexis.domain.models import ConfirmedTag, PendingTag, Tag


def test_local_ids_are_prefixed_and_unique():
    a, b = generate_local_tag_id(), generate_local_tag_id()
    assert a.startswith("pending_")
    assert a != b


def test_add_pending_ignores_blank_names():
    sel = TagSelection()
    assert sel.add_pending("   ") is None
    assert sel.entries == []


def test_pending_tags_never_in_confirmed_ids(tag):
    sel = TagSelection.from_tags([tag])
    pending = sel.add_pending(" verbs ")
    assert isinstance(pending, PendingTag)
    assert pending.name == "verbs"
    assert sel.confirmed_ids() == [7]
    assert sel.pending() == [pending]


def test_toggle(tag):
    sel = TagSelection()
    assert sel.toggle(tag) is True
    assert sel.confirmed_ids() == [7]
    assert sel.toggle(tag) is False
    assert sel.confirmed_ids() == []


def test_add_existing_is_idempotent(tag):
    sel = TagSelection()
    sel.add_existing(tag)
    sel.add_existing(tag)
    assert sel.confirmed_ids() == [7]


@pytest.mark.asyncio
async def test_reconcile_replaces_pending_in_place(mock_catalog, tag):
    sel = TagSelection.from_tags([tag])
    sel.add_pending("verbs", color="#00ff00")
    sel.add_existing(Tag(id=3, name="nouns"))
    mock_catalog.create_tag.return_value = Tag(id=11, name="verbs", color="#00ff00")

    created = await sel.reconcile(mock_catalog)

    assert [t.id for t in created] == [11]
    assert sel.confirmed_ids() == [7, 11, 3]
    assert sel.pending() == []
    mock_catalog.create_tag.assert_awaited_once_with("verbs", color="#00ff00")


@pytest.mark.asyncio
async def test_reconcile_keeps_failed_tags_pending(mock_catalog):
    sel = TagSelection()
    sel.add_pending("a")
    sel.add_pending("b")
    mock_catalog.create_tag.side_effect = [
        TransportError("down"),
        Tag(id=2, name="b"),
    ]

    with pytest.raises(TransportError):
        await sel.reconcile(mock_catalog)

    assert sel.confirmed_ids() == [2]
    assert [p.name for p in sel.pending()] == ["a"]
    assert isinstance(sel.entries[1], ConfirmedTag)
