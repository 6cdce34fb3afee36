"""Tag selection with locally created, not yet persisted, tags."""

import logging

from ulid import ULID

from lexis.domain.constants import PENDING_TAG_PREFIX
from lexis.domain.errors import CatalogError
from lexis.domain.interfaces import CatalogClient
from lexis.domain.models import ConfirmedTag, PendingTag, Tag, TagEntry

logger = logging.getLogger(__name__)


def generate_local_tag_id() -> str:
    """Generate a temporary tag id that cannot collide with catalog ids."""
    return f"{PENDING_TAG_PREFIX}{ULID()}"


class TagSelection:
    """
    Ordered set of tags chosen for an item being edited.

    Pending tags are kept apart from confirmed ones until the catalog assigns
    them a real id; only confirmed ids are ever sent as tag_ids.
    """

    def __init__(self, entries: list[TagEntry] | None = None):
        self._entries: list[TagEntry] = list(entries or [])

    @classmethod
    def from_tags(cls, tags: list[Tag] | tuple[Tag, ...]) -> "TagSelection":
        return cls([ConfirmedTag(t) for t in tags])

    @property
    def entries(self) -> list[TagEntry]:
        return list(self._entries)

    def add_existing(self, tag: Tag) -> None:
        if tag.id not in self.confirmed_ids():
            self._entries.append(ConfirmedTag(tag))

    def add_pending(self, name: str, color: str | None = None) -> PendingTag | None:
        name = name.strip()
        if not name:
            return None
        entry = PendingTag(local_id=generate_local_tag_id(), name=name, color=color)
        self._entries.append(entry)
        return entry

    def toggle(self, tag: Tag) -> bool:
        """Select or deselect a confirmed tag. Returns True if now selected."""
        for entry in self._entries:
            if isinstance(entry, ConfirmedTag) and entry.tag.id == tag.id:
                self._entries.remove(entry)
                return False
        self._entries.append(ConfirmedTag(tag))
        return True

    def remove(self, entry: TagEntry) -> None:
        self._entries.remove(entry)

    def confirmed_ids(self) -> list[int]:
        return [e.tag.id for e in self._entries if isinstance(e, ConfirmedTag)]

    def pending(self) -> list[PendingTag]:
        return [e for e in self._entries if isinstance(e, PendingTag)]

    async def reconcile(self, catalog: CatalogClient) -> list[Tag]:
        """
        Create every pending tag on the catalog and swap in the confirmed tag.

        Each pending tag is attempted; failed ones stay pending. The first
        failure is re-raised after all attempts.

        Returns:
            Tags newly confirmed by this call.
        """
        created: list[Tag] = []
        first_error: CatalogError | None = None

        for entry in self.pending():
            try:
                tag = await catalog.create_tag(entry.name, color=entry.color)
            except CatalogError as e:
                logger.warning(f"[tags] could not create '{entry.name}': {e}")
                first_error = first_error or e
                continue
            idx = self._entries.index(entry)
            self._entries[idx] = ConfirmedTag(tag)
            created.append(tag)
            logger.debug(f"[tags] {entry.local_id} -> id={tag.id}")

        if first_error is not None:
            raise first_error
        return created
