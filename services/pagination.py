"""Offset pagination for the "load more" reading table.

There is no explicit "has more" flag: a page shorter than ``limit`` (including
an empty page) is the last one. When the row count is an exact multiple of
``limit`` the final full page still looks continuable, and the page after it
comes back empty.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, Sequence, TypeVar

from services.errors import InvalidArgument

DEFAULT_LIMIT = 10

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    def __post_init__(self) -> None:
        if self.limit < 0:
            raise InvalidArgument("limit must be a non-negative integer.")
        if self.offset < 0:
            raise InvalidArgument("offset must be a non-negative integer.")

    def next(self) -> "PageRequest":
        return PageRequest(limit=self.limit, offset=self.offset + self.limit)

    def is_last(self, rows: Sequence[object]) -> bool:
        # limit=0 asks for nothing, so it can never make progress.
        return self.limit == 0 or len(rows) < self.limit


def iter_pages(
    fetch: Callable[[PageRequest], Sequence[T]],
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Iterator[Sequence[T]]:
    """Yield pages from ``fetch`` until a short page signals the end."""
    request = PageRequest(limit=limit, offset=offset)
    while True:
        rows = fetch(request)
        if rows:
            yield rows
        if request.is_last(rows):
            return
        request = request.next()
