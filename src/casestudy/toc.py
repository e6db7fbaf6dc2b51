"""Table-of-contents synchronizer for rendered case studies.

The TOC is built from the canonical section catalog, never from the author's
headings.  Entry ids are computed with the same slug function the prose
formatter uses, so a catalog title and the matching heading share an id.

Active-section rule: on every scroll event, walk the entries from last to
first; the first entry whose element top is ``<= scroll_y + active_offset``
becomes active.  This is "nearest section at or above the cursor", not a
visibility test.  Entries with no element on the page are skipped, and if no
entry qualifies the previous active id is kept.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Protocol

from casestudy.catalog import TOCEntry, generate_standardized_toc

logger = logging.getLogger(__name__)

DEFAULT_ACTIVE_OFFSET = 100.0

type ScrollListener = Callable[[float], None]


class ScrollSurface(Protocol):
    """The page a TOC is attached to."""

    @property
    def scroll_y(self) -> float: ...

    def element_top(self, element_id: str) -> float | None: ...

    def add_scroll_listener(self, listener: ScrollListener) -> None: ...

    def remove_scroll_listener(self, listener: ScrollListener) -> None: ...

    def scroll_to(self, top: float) -> None: ...


class PageLayout:
    """In-memory :class:`ScrollSurface` backed by known element offsets."""

    def __init__(self, offsets: Mapping[str, float] | None = None, *, scroll_y: float = 0.0) -> None:
        self.offsets: dict[str, float] = dict(offsets or {})
        self._scroll_y = scroll_y
        self._listeners: list[ScrollListener] = []

    @property
    def scroll_y(self) -> float:
        return self._scroll_y

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def element_top(self, element_id: str) -> float | None:
        return self.offsets.get(element_id)

    def add_scroll_listener(self, listener: ScrollListener) -> None:
        self._listeners.append(listener)

    def remove_scroll_listener(self, listener: ScrollListener) -> None:
        self._listeners.remove(listener)

    def scroll_to(self, top: float) -> None:
        self._scroll_y = max(0.0, top)
        for listener in list(self._listeners):
            listener(self._scroll_y)


class TableOfContents:
    """Catalog-driven TOC with scroll-synchronized active entry."""

    def __init__(
        self,
        entries: Iterable[TOCEntry] | None = None,
        *,
        active_offset: float = DEFAULT_ACTIVE_OFFSET,
    ) -> None:
        self.entries: tuple[TOCEntry, ...] = (
            tuple(entries) if entries is not None else generate_standardized_toc()
        )
        self.active_offset = active_offset
        self.active_id: str | None = None
        self._surface: ScrollSurface | None = None
        self._listener: ScrollListener = self._on_scroll

    @property
    def attached(self) -> bool:
        return self._surface is not None

    def attach(self, surface: ScrollSurface) -> None:
        """Subscribe to *surface* scroll events until :meth:`detach`."""
        if self._surface is not None:
            raise RuntimeError("table of contents is already attached")
        surface.add_scroll_listener(self._listener)
        self._surface = surface

    def detach(self) -> None:
        """Remove the scroll subscription and clear the active entry."""
        if self._surface is not None:
            self._surface.remove_scroll_listener(self._listener)
            self._surface = None
        self.active_id = None

    def _on_scroll(self, scroll_y: float) -> None:
        self.update_active(scroll_y)

    def update_active(self, scroll_y: float) -> str | None:
        """Recompute the active entry for *scroll_y* and return its id."""
        if self._surface is None:
            raise RuntimeError("table of contents is not attached")
        cursor = scroll_y + self.active_offset
        for entry in reversed(self.entries):
            top = self._surface.element_top(entry.id)
            if top is not None and top <= cursor:
                self.active_id = entry.id
                break
        return self.active_id

    def jump_to(self, entry_id: str) -> bool:
        """Scroll the page to the element with *entry_id*.

        Returns:
            True if the element exists and the page was scrolled.
        """
        if self._surface is None:
            logger.debug("TOC jump to %r ignored: not attached", entry_id)
            return False
        top = self._surface.element_top(entry_id)
        if top is None:
            logger.debug("TOC jump target %r not found on page", entry_id)
            return False
        self._surface.scroll_to(top)
        return True

    def to_dict(self) -> dict[str, object]:
        return {
            "entries": [
                {"id": e.id, "title": e.title, "level": e.level} for e in self.entries
            ],
            "active_id": self.active_id,
        }
