"""Offset pagination over client-side filtered lists."""

import math
from dataclasses import dataclass
from typing import Literal, Optional, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_MAX_VISIBLE_PAGES = 5


@dataclass(frozen=True)
class PageWindowItem:
    """One entry in the rendered page bar: a page link or an ellipsis."""

    kind: Literal["page", "ellipsis"]
    page: Optional[int] = None
    active: bool = False


def total_pages_for(total_items: int, page_size: int) -> int:
    """Return ``ceil(total_items / page_size)``; zero items means zero pages."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return math.ceil(max(total_items, 0) / page_size)


@dataclass
class Pagination:
    """Current page over a filtered list of ``total_items`` entries."""

    total_items: int
    page_size: int
    current_page: int = 1

    def __post_init__(self) -> None:
        # keep the current page inside [1, total_pages] when the list shrinks
        self.current_page = min(max(self.current_page, 1), max(self.total_pages, 1))

    @property
    def total_pages(self) -> int:
        return total_pages_for(self.total_items, self.page_size)

    def change_page(self, page: int) -> bool:
        """Move to ``page``; targets outside ``[1, total_pages]`` are ignored."""
        if 1 <= page <= self.total_pages:
            self.current_page = page
            return True
        return False

    def page_items(self, items: Sequence[T]) -> list[T]:
        start = (self.current_page - 1) * self.page_size
        return list(items[start:start + self.page_size])

    def page_window(self, max_visible: int = DEFAULT_MAX_VISIBLE_PAGES) -> list[PageWindowItem]:
        """
        Build the page bar: at most ``max_visible`` links around the current page.

        Near the start the window anchors to the first ``max_visible`` pages
        and near the end to the last ones. The first and last pages stay
        pinned, with an ellipsis, when the window does not reach them.

        Args:
            max_visible: Number of consecutive page links to show.

        Returns:
            Ordered list of page and ellipsis entries.
        """
        total = self.total_pages
        current = self.current_page
        start_page, end_page = 1, total

        if total > max_visible:
            half = max_visible // 2
            start_page = max(current - half, 1)
            end_page = min(current + half, total)

            if current <= half + 1:
                start_page, end_page = 1, max_visible
            elif current >= total - half:
                start_page, end_page = total - max_visible + 1, total

        items: list[PageWindowItem] = []
        if start_page > 1:
            items.append(PageWindowItem("page", 1))
            if start_page > 2:
                items.append(PageWindowItem("ellipsis"))

        for page in range(start_page, end_page + 1):
            items.append(PageWindowItem("page", page, active=page == current))

        if end_page < total:
            if end_page < total - 1:
                items.append(PageWindowItem("ellipsis"))
            items.append(PageWindowItem("page", total))

        return items


@dataclass
class ListViewState:
    """Search query and page remembered for one list view across requests."""

    search_query: str = ""
    current_page: int = 1

    def set_search(self, query: str) -> None:
        """Apply a search query; a different query always returns to page 1."""
        query = (query or "").strip()
        if query != self.search_query:
            self.search_query = query
            self.current_page = 1

    def to_dict(self) -> dict[str, object]:
        return {"search_query": self.search_query, "current_page": self.current_page}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ListViewState":
        data = data or {}
        try:
            page = int(data.get("current_page") or 1)
        except (TypeError, ValueError):
            page = 1
        return cls(search_query=str(data.get("search_query") or ""), current_page=page)
