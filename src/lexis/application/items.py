"""Creating and editing vocabulary items with a tag selection."""

import logging
from typing import Any

from lexis.application.tags import TagSelection
from lexis.domain.errors import ValidationError
from lexis.domain.interfaces import CatalogClient
from lexis.domain.models import Tag, VocabularyItem

logger = logging.getLogger(__name__)


async def resolve_tags(catalog: CatalogClient, tag_ids: list[int]) -> list[Tag]:
    """
    Look up catalog tags by id, keeping the given order.

    Raises:
        ValidationError: if any id is unknown to the catalog.
    """
    if not tag_ids:
        return []
    known = {t.id: t for t in await catalog.list_tags()}
    missing = [i for i in tag_ids if i not in known]
    if missing:
        raise ValidationError(f"Unknown tag id(s): {', '.join(map(str, missing))}")
    return [known[i] for i in tag_ids]


async def save_item(
    catalog: CatalogClient,
    fields: dict[str, Any],
    selection: TagSelection | None = None,
    vocab_id: int | None = None,
) -> VocabularyItem:
    """
    Create (vocab_id None) or update an item.

    Pending tags in the selection are created on the catalog first; the write
    only happens once every pending tag is confirmed, and carries confirmed
    ids only. Fields whose value is None are left out.

    Args:
        catalog: Catalog port.
        fields: VocabularyItem field names to values.
        selection: Tags for the item; None leaves the item's tags untouched.
        vocab_id: Item to update.

    Returns:
        The item as stored by the catalog.
    """
    payload = {k: v for k, v in fields.items() if v is not None}
    if selection is not None:
        await selection.reconcile(catalog)
        payload["tag_ids"] = selection.confirmed_ids()

    if vocab_id is None:
        item = await catalog.create_item(payload)
        logger.info(f"[items] created {item.id} '{item.word}'")
    else:
        item = await catalog.update_item(vocab_id, payload)
        logger.info(f"[items] updated {item.id} ({', '.join(sorted(payload))})")
    return item
