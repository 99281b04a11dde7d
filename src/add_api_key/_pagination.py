"""Drain position-token listings into a single list.

'why': API Gateway pages every listing; resolution needs the full set before matching names
"""
from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from ._config import DEFAULT_MAX_PAGES
from ._errors import PaginationLimitError


def collect_items(
    fetch_page: Callable[[str | None], Mapping[str, Any]],
    *,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> list[Mapping[str, Any]]:
    """Follow `position` tokens until a page omits one and return every item in order.

    A failing page aborts the whole listing; no partial result is returned.
    """

    items: list[Mapping[str, Any]] = []
    position: str | None = None
    for _ in range(max_pages):
        response = fetch_page(position)
        items.extend(response.get("items") or ())
        position = response.get("position") or None
        if position is None:
            return items
    raise PaginationLimitError(f"listing still returned a position token after {max_pages} pages")
