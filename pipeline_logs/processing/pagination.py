"""Page arithmetic for log listings."""

import math
from dataclasses import dataclass
from typing import List, Tuple


@dataclass(frozen=True)
class PageInfo:
    total: int
    page_size: int
    total_pages: int


def derive(total: int, page_size: int) -> PageInfo:
    """Compute the page count for ``total`` matches; zero matches means zero pages."""
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    if total < 0:
        raise ValueError("total must be >= 0")
    return PageInfo(total=total, page_size=page_size, total_pages=math.ceil(total / page_size))


def clamp(page: int, total_pages: int) -> int:
    """Bound a requested page to ``[1, max(total_pages, 1)]``."""
    return max(1, min(page, max(total_pages, 1)))


def page_window(current: int, total_pages: int, max_visible: int = 5) -> List[int]:
    """
    Page numbers to show in navigation controls.

    A run of at most ``max_visible`` consecutive pages centered on
    ``current`` and shifted so it never leaves ``[1, total_pages]``.
    """
    if total_pages < 1:
        return []
    start = max(1, current - max_visible // 2)
    end = min(total_pages, start + max_visible - 1)
    if end - start + 1 < max_visible:
        start = max(1, end - max_visible + 1)
    return list(range(start, end + 1))


def offset_for(page: int, page_size: int) -> int:
    return (page - 1) * page_size


def result_range(page: int, page_size: int, total: int) -> Tuple[int, int]:
    """1-based bounds for "showing X to Y of Z"; ``(0, 0)`` when nothing matched."""
    if total == 0:
        return 0, 0
    first = offset_for(page, page_size) + 1
    return min(first, total), min(page * page_size, total)
