"""Heading identifiers (slugs) used as navigation anchors.

Every place that needs a heading anchor goes through :func:`slugify_heading`:
the prose formatter while it builds markup, the fallback id pass over an
assembled page, and the table of contents when it turns catalog titles into
anchors.  A TOC jump only works when all three agree, so the normalization
lives here and nowhere else.

Normalization:
    1. Lower-case.
    2. Drop every character outside ``[a-z0-9]``, whitespace and ``-``.
    3. Collapse whitespace runs into a single ``-``.
    4. Collapse repeated ``-``.
    5. Trim leading/trailing ``-``.

``slugify_heading("Results & Metrics") == "results-metrics"``.
"""
from __future__ import annotations

import html
import re
from dataclasses import dataclass

from casestudy.diagnostics import Diagnostic

LEGACY_ID_PREFIX = "heading-"

_DISALLOWED_RE = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE_RE = re.compile(r"\s+")
_HYPHEN_RUN_RE = re.compile(r"-{2,}")
_TAG_RE = re.compile(r"<[^>]*>")


@dataclass(frozen=True, slots=True)
class HeadingRecord:
    """A heading found in formatted prose, with the identifier it was given."""

    text: str
    level: int
    slug: str

    def __post_init__(self) -> None:
        if not 1 <= self.level <= 6:
            raise ValueError(f"level must be in [1, 6], got {self.level}")


def slugify_heading(text: str) -> str:
    """Turn heading text into a deterministic anchor identifier."""
    slug = _DISALLOWED_RE.sub("", text.lower())
    slug = _WHITESPACE_RE.sub("-", slug)
    slug = _HYPHEN_RUN_RE.sub("-", slug)
    return slug.strip("-")


def heading_text(fragment: str) -> str:
    """Visible text of a heading's inner markup (tags stripped, entities decoded)."""
    return html.unescape(_TAG_RE.sub("", fragment)).strip()


def strip_legacy_prefix(identifier: str, prefix: str = LEGACY_ID_PREFIX) -> str:
    """Normalize an identifier minted by the older ``heading-`` scheme."""
    if prefix and identifier.startswith(prefix):
        return identifier[len(prefix):]
    return identifier


class SlugRegistry:
    """Tracks identifiers already used in one document.

    The first heading with a given slug keeps it unchanged, which keeps TOC
    anchors pointing at the first occurrence.  Later duplicates get ``-1``,
    ``-2``, ... when *dedupe* is on; otherwise they keep the shared slug.
    Either way the collision is recorded in :attr:`warnings`.
    """

    def __init__(self, *, dedupe: bool = True) -> None:
        self.dedupe = dedupe
        self.warnings: list[Diagnostic] = []
        self._taken: set[str] = set()
        self._suffix: dict[str, int] = {}

    def __contains__(self, slug: object) -> bool:
        return slug in self._taken

    def reserve(self, slug: str) -> None:
        """Record an identifier that already exists and must not change."""
        if slug in self._taken:
            self.warnings.append(Diagnostic(
                "slug_collision",
                f"identifier {slug!r} is already used by an earlier heading",
            ))
        self._taken.add(slug)

    def claim(self, slug: str) -> str:
        """Reserve *slug* for a new heading and return the identifier to use."""
        if slug not in self._taken:
            self._taken.add(slug)
            return slug

        if not self.dedupe:
            self.warnings.append(Diagnostic(
                "slug_collision",
                f"duplicate heading identifier {slug!r} left as-is",
            ))
            return slug

        n = self._suffix.get(slug, 0)
        candidate = slug
        while candidate in self._taken:
            n += 1
            candidate = f"{slug}-{n}"
        self._suffix[slug] = n
        self._taken.add(candidate)
        self.warnings.append(Diagnostic(
            "slug_collision",
            f"duplicate heading identifier {slug!r} renamed to {candidate!r}",
        ))
        return candidate
