"""
Deduplication & Pagination

Keeps a video from showing up twice in a fetch pass and slices the
merged list into keyset-paginated pages.

Cursors are opaque base64 tokens wrapping the sort key of the last row
served: (tier, sort value, id). Rows are ordered by tier ascending, sort
value descending, then id ascending. A cursor that does not decode is
taken to be a bare video id and filters by ``id > cursor``.
"""

import base64
import json
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, List, Optional, Tuple, TypeVar

from ..core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CursorKey:
    """Position of a row in a feed ordering."""
    tier: int
    value: float
    id: str

    def sort_key(self) -> Tuple[int, float, str]:
        return (self.tier, -self.value, self.id)


@dataclass
class Page(Generic[T]):
    items: List[T]
    next_cursor: Optional[str]
    has_more: bool


def dedupe_by_id(items: Iterable[T], key: Callable[[T], str]) -> List[T]:
    """
    Drop repeated ids, keeping the first occurrence.
    
    Callers pass sources in precedence order, so the earliest source wins.
    """
    seen: set = set()
    unique: List[T] = []
    for item in items:
        item_id = key(item)
        if item_id in seen:
            continue
        seen.add(item_id)
        unique.append(item)
    return unique


def encode_cursor(key: CursorKey) -> str:
    """Encode a sort key into an opaque cursor."""
    payload = json.dumps({"t": key.tier, "k": key.value, "id": key.id})
    return base64.urlsafe_b64encode(payload.encode()).decode()


def decode_cursor(cursor: str) -> Optional[CursorKey]:
    """
    Decode a cursor.
    
    Returns:
        The CursorKey, or None if the token is not one of ours
        (a bare video id or garbage).
    """
    try:
        payload = base64.urlsafe_b64decode(cursor.encode()).decode()
        data = json.loads(payload)
        return CursorKey(tier=int(data["t"]), value=float(data["k"]), id=str(data["id"]))
    except (ValueError, KeyError, TypeError):
        return None


def apply_cursor(
    entries: List[Tuple[CursorKey, T]],
    cursor: Optional[str],
) -> List[Tuple[CursorKey, T]]:
    """Keep only entries that sort after the cursor."""
    if not cursor:
        return entries
    
    position = decode_cursor(cursor)
    if position is None:
        logger.debug("legacy_id_cursor", cursor=cursor[:64])
        return [(k, item) for k, item in entries if k.id > cursor]
    
    after = position.sort_key()
    return [(k, item) for k, item in entries if k.sort_key() > after]


def paginate(
    entries: List[Tuple[CursorKey, T]],
    cursor: Optional[str],
    limit: int,
) -> Page[T]:
    """
    Slice one page out of entries already sorted by CursorKey.sort_key().
    
    has_more is true when rows remain past the returned slice;
    next_cursor then points at the last returned row.
    """
    remaining = apply_cursor(entries, cursor)
    window = remaining[:limit]
    has_more = len(remaining) > len(window)
    next_cursor = encode_cursor(window[-1][0]) if has_more and window else None
    return Page(
        items=[item for _, item in window],
        next_cursor=next_cursor,
        has_more=has_more,
    )
