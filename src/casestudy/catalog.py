"""Canonical section catalog for case-study documents.

The table of contents of a case study is fixed: it always lists the same
seven sections in the same order, whatever headings the author wrote.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from casestudy.slugs import slugify_heading


@dataclass(frozen=True, slots=True)
class CatalogSection:
    """One section title in the canonical outline."""

    title: str
    level: int = 2

    def __post_init__(self) -> None:
        if not self.title.strip():
            raise ValueError("title cannot be empty")
        if not 1 <= self.level <= 6:
            raise ValueError(f"level must be in [1, 6], got {self.level}")


@dataclass(frozen=True, slots=True)
class TOCEntry:
    """A navigable table-of-contents entry."""

    id: str
    title: str
    level: int

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError(f"entry {self.title!r} has an empty id")


CASE_STUDY_SECTIONS: tuple[CatalogSection, ...] = (
    CatalogSection("Problem Statement"),
    CatalogSection("Research & Analysis"),
    CatalogSection("Solution Design"),
    CatalogSection("Implementation"),
    CatalogSection("Results & Metrics"),
    CatalogSection("Lessons Learned"),
    CatalogSection("Next Steps"),
)


def generate_standardized_toc(
    sections: Iterable[CatalogSection] = CASE_STUDY_SECTIONS,
) -> tuple[TOCEntry, ...]:
    """Build TOC entries by slugging each catalog title."""
    return tuple(
        TOCEntry(id=slugify_heading(s.title), title=s.title, level=s.level)
        for s in sections
    )


def missing_sections(
    entries: Iterable[TOCEntry],
    heading_slugs: Iterable[str],
) -> tuple[TOCEntry, ...]:
    """Catalog entries that have no matching heading in a rendered document."""
    present = set(heading_slugs)
    return tuple(e for e in entries if e.id not in present)
