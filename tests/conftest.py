from unittest.mock import AsyncMock

import pytest

from lexis.domain.interfaces import CatalogClient
from lexis.domain.models import ReviewLogRecord, Tag, VocabularyItem


def _make_item(vocab_id: int, word: str | None = None, **kwargs) -> VocabularyItem:
    return VocabularyItem(
        id=vocab_id,
        word=word or f"word{vocab_id}",
        meaning=kwargs.pop("meaning", f"meaning {vocab_id}"),
        **kwargs,
    )


def _make_log(vocab_id: int, is_correct: bool = True) -> ReviewLogRecord:
    return ReviewLogRecord(
        id=vocab_id * 100, vocabulary_id=vocab_id, is_correct=is_correct, review_type="normal"
    )


@pytest.fixture
def make_item():
    """Factory for VocabularyItem with sensible defaults."""
    return _make_item


@pytest.fixture
def items():
    """Three due items, in catalog order."""
    return [_make_item(1, "apple"), _make_item(2, "banana"), _make_item(3, "cherry")]


@pytest.fixture
def tag():
    return Tag(id=7, name="fruit", color="#ff0000")


@pytest.fixture
def mock_catalog():
    """A CatalogClient whose async methods are all AsyncMocks."""
    catalog = AsyncMock(spec=CatalogClient)

    async def _submit(outcome):
        return _make_log(outcome.vocabulary_id, outcome.is_correct)

    catalog.submit_outcome.side_effect = _submit
    catalog.fetch_due_items.return_value = []
    return catalog


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config files
    monkeypatch.setenv("HOME", str(home))
    for var in ("LEXIS_API_BASE_URL", "LEXIS_PAGE_SIZE", "LEXIS_TRACK_RESPONSE_TIME"):
        monkeypatch.delenv(var, raising=False)
    return home
