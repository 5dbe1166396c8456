"""
Per-tenant, in-memory repositories for notes and bookmarks.

Each repository owns its records keyed by a monotonic id, plus an owner
index so listing never scans another tenant's records. Any record that is
missing or owned by someone else is reported as NotFound, so callers cannot
probe for other tenants' ids.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import (Awaitable, Callable, Dict, Generic, Iterable, List,
                    Optional, Tuple, Type, TypeVar, Union)

from pydantic import BaseModel

from .errors import NotFound
from .models import Bookmark, Note
from .validation import BookmarkPayload, NotePayload, validate_payload

logger = logging.getLogger(__name__)

T = TypeVar("T", Note, Bookmark)

TitleResolver = Callable[[str], Awaitable[str]]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
def parse_tag_query(tags: Union[str, Iterable[str], None]) -> List[str]:
    """Split a comma-separated tag query into trimmed, lower-cased tags."""
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    return [t.strip().lower() for t in tags if t and t.strip()]


class ResourceRepository(Generic[T]):
    """
    Shared CRUD, search and favorite logic.

    Subclasses set `schema`, `search_fields` and `kind`, and implement
    `_build` and `_apply` to map a validated payload onto a record.
    """
    schema: Type[BaseModel]
    search_fields: Tuple[str, ...] = ()
    kind = "Resource"

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._items: Dict[int, T] = {}
        # owner_id -> ids in creation order (dict used as an ordered set)
        self._by_owner: Dict[int, Dict[int, None]] = {}
        self._next_id = 1

    def __len__(self):
        return len(self._items)

    # -- hooks ---------------------------------------------------------

    async def _prepare(self, data) -> dict:
        """Turn a validated payload into record fields. May suspend."""
        raise NotImplementedError

    def _build(self, item_id: int, owner_id: int, fields: dict, now: datetime) -> T:
        raise NotImplementedError

    # -- helpers -------------------------------------------------------

    def _owned(self, owner_id: int, item_id: int) -> T:
        item = self._items.get(item_id)
        if item is None or item.owner_id != owner_id:
            raise NotFound(f"{self.kind} not found.")
        return item

    def _touch(self, item: T) -> None:
        now = self._clock()
        if now <= item.updated_at:
            now = item.updated_at + timedelta(microseconds=1)
        item.updated_at = now

    def _matches_text(self, item: T, text: str) -> bool:
        for name in self.search_fields:
            value = getattr(item, name, None)
            if value and text in value.lower():
                return True
        return False

    # -- operations ----------------------------------------------------

    async def create(self, owner_id: int, payload) -> T:
        """
        Validate payload and store a new record for owner_id.
        Raises ValidationError before anything is written.
        """
        data = validate_payload(self.schema, payload)
        fields = await self._prepare(data)
        fields["tags"] = list(data.tags or [])
        fields["favorite"] = data.favorite if isinstance(data.favorite, bool) else False
        now = self._clock()
        item = self._build(self._next_id, owner_id, fields, now)
        self._next_id += 1
        self._items[item.id] = item
        self._by_owner.setdefault(owner_id, {})[item.id] = None
        logger.debug("Created %s %s for user %s", self.kind, item.id, owner_id)
        return item

    def list(self, owner_id: int, text: Optional[str] = None,
             tags: Union[str, Iterable[str], None] = None) -> List[T]:
        """
        Return owner_id's records, optionally filtered by a case-insensitive
        substring and by ANY-match on tags.
        """
        items = [self._items[i] for i in self._by_owner.get(owner_id, {})]
        if text:
            needle = text.lower()
            items = [item for item in items if self._matches_text(item, needle)]
        wanted = set(parse_tag_query(tags))
        if wanted:
            items = [item for item in items
                     if any(tag.lower() in wanted for tag in item.tags)]
        return items

    def get(self, owner_id: int, item_id: int) -> T:
        return self._owned(owner_id, item_id)

    async def update(self, owner_id: int, item_id: int, payload) -> T:
        """
        Replace every mutable field of an owned record.
        `favorite` changes only when the payload carries a boolean.
        """
        self._owned(owner_id, item_id)
        data = validate_payload(self.schema, payload)
        fields = await self._prepare(data)
        # The record may have been deleted while the title was fetched.
        item = self._owned(owner_id, item_id)
        for name, value in fields.items():
            setattr(item, name, value)
        item.tags = list(data.tags or [])
        if isinstance(data.favorite, bool):
            item.favorite = data.favorite
        self._touch(item)
        return item

    def delete(self, owner_id: int, item_id: int) -> None:
        self._owned(owner_id, item_id)
        del self._items[item_id]
        self._by_owner[owner_id].pop(item_id, None)
        logger.debug("Deleted %s %s for user %s", self.kind, item_id, owner_id)

    def toggle_favorite(self, owner_id: int, item_id: int) -> T:
        item = self._owned(owner_id, item_id)
        item.favorite = not item.favorite
        self._touch(item)
        return item


# PUBLIC_INTERFACE
class NoteRepository(ResourceRepository[Note]):
    schema = NotePayload
    search_fields = ("content",)
    kind = "Note"

    async def _prepare(self, data: NotePayload) -> dict:
        return {"content": data.content}

    def _build(self, item_id, owner_id, fields, now) -> Note:
        return Note(id=item_id, owner_id=owner_id, created_at=now, updated_at=now, **fields)


# PUBLIC_INTERFACE
class BookmarkRepository(ResourceRepository[Bookmark]):
    """
    Bookmarks without a title get one from the title resolver, or the URL
    itself when the resolver comes back empty.
    """
    schema = BookmarkPayload
    search_fields = ("title", "description")
    kind = "Bookmark"

    def __init__(self, title_resolver: Optional[TitleResolver] = None,
                 clock: Callable[[], datetime] = utcnow):
        super().__init__(clock=clock)
        self._title_resolver = title_resolver

    async def resolve_title(self, url: str) -> str:
        if self._title_resolver is None:
            return ""
        return await self._title_resolver(url)

    async def _prepare(self, data: BookmarkPayload) -> dict:
        title = data.title
        if not title:
            title = await self.resolve_title(data.url)
            if not title:
                logger.info("No title found for %s, using the URL", data.url)
        return {
            "url": data.url,
            "title": title or data.url,
            "description": data.description or "",
        }

    def _build(self, item_id, owner_id, fields, now) -> Bookmark:
        return Bookmark(id=item_id, owner_id=owner_id, created_at=now, updated_at=now, **fields)
