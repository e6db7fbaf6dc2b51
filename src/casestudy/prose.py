"""Prose formatting: Markdown to HTML with heading identifiers.

:func:`format_prose` converts a prose segment with markdown-it-py and then
walks every ``h1``-``h6`` once with BeautifulSoup, assigning identifiers and
recording a :class:`~casestudy.slugs.HeadingRecord` per heading.  The records
are returned alongside the markup, so the TOC and the page never need to
re-derive identifiers from rendered output.

Identifier rules, per heading:
    - existing ``id`` starting with the legacy prefix -> prefix stripped;
    - any other existing ``id`` -> kept as-is;
    - no ``id`` -> :func:`~casestudy.slugs.slugify_heading` of the heading text.

:func:`ensure_heading_ids` is the page-level fallback pass: it only fills in
missing identifiers and is idempotent.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from bs4 import BeautifulSoup
from bs4.element import Tag
from markdown_it import MarkdownIt

from casestudy.config import DEFAULT_CONFIG, RenderConfig
from casestudy.diagnostics import Diagnostic
from casestudy.slugs import (
    HeadingRecord,
    SlugRegistry,
    heading_text,
    slugify_heading,
    strip_legacy_prefix,
)

HEADING_TAGS: list[str] = ["h1", "h2", "h3", "h4", "h5", "h6"]


@dataclass(frozen=True, slots=True)
class FormattedProse:
    """Display markup for one prose segment plus the headings it contains."""

    html: str
    headings: tuple[HeadingRecord, ...]
    warnings: tuple[Diagnostic, ...] = ()


@lru_cache(maxsize=8)
def markdown_renderer(config: RenderConfig = DEFAULT_CONFIG) -> MarkdownIt:
    """markdown-it-py instance for *config* (cached per config).

    ``heading`` is always on: the ``zero`` preset disables it, and headings
    are the TOC anchors.
    """
    md = MarkdownIt(config.markdown_preset)
    extensions = ["heading", "strikethrough"]
    if config.enable_tables:
        extensions.append("table")
    md.enable(extensions)
    return md


def _heading_level(tag: Tag) -> int:
    return int(tag.name[1])


def format_prose(
    markdown: str,
    *,
    registry: SlugRegistry | None = None,
    config: RenderConfig | None = None,
) -> FormattedProse:
    """Render *markdown* to HTML and attach identifiers to its headings.

    Args:
        markdown: Raw prose text.
        registry: Identifiers already used in the document.  The assembler
            passes one registry through every prose segment; standalone calls
            get a fresh one.
        config: Rendering options (legacy prefix, markdown preset, ...).

    Returns:
        :class:`FormattedProse` with the HTML, heading records in document
        order, and any identifier warnings raised while formatting.
    """
    config = config or DEFAULT_CONFIG
    if registry is None:
        registry = SlugRegistry(dedupe=config.dedupe_slugs)
    seen_warnings = len(registry.warnings)
    extra_warnings: list[Diagnostic] = []

    soup = BeautifulSoup(markdown_renderer(config).render(markdown), "html.parser")
    headings: list[HeadingRecord] = []
    for tag in soup.find_all(HEADING_TAGS):
        text = heading_text(tag.decode_contents())
        existing = tag.get("id")
        slug = strip_legacy_prefix(str(existing), config.legacy_id_prefix) if existing else ""
        if slug:
            registry.reserve(slug)
        else:
            # No id, or a bare legacy prefix with nothing after it.
            slug = slugify_heading(text)
            if slug:
                slug = registry.claim(slug)
            else:
                extra_warnings.append(Diagnostic(
                    "empty_slug", f"heading {text!r} has no characters usable in an identifier",
                ))
        if slug:
            tag["id"] = slug
        else:
            tag.attrs.pop("id", None)
        headings.append(HeadingRecord(text=text, level=_heading_level(tag), slug=slug))

    return FormattedProse(
        html=str(soup),
        headings=tuple(headings),
        warnings=tuple(registry.warnings[seen_warnings:]) + tuple(extra_warnings),
    )


def ensure_heading_ids(html: str, *, registry: SlugRegistry | None = None) -> str:
    """Assign identifiers to headings that have none; never touch existing ones.

    Running the pass again on its own output changes nothing.
    """
    soup = BeautifulSoup(html, "html.parser")
    tags = soup.find_all(HEADING_TAGS)
    if registry is None:
        registry = SlugRegistry()
    for tag in tags:
        if tag.get("id"):
            registry.reserve(str(tag["id"]))
    for tag in tags:
        if tag.get("id"):
            continue
        slug = slugify_heading(heading_text(tag.decode_contents()))
        if slug:
            tag["id"] = registry.claim(slug)
    return str(soup)
