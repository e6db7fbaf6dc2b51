"""Block renderer dispatch: decoded block -> render directive.

Each decoded variant maps to one visual component.  ``comparison``,
``metrics``/``kpis`` and ``gallery`` produce collection directives (one child
per row); ``quote`` and ``cta`` produce a single directive; the card-style
types (pricing, techstack, marketing, timeline) produce a container with one
child card per row.

``UnknownBlock`` and ``MalformedBlock`` map to a ``diagnostic`` directive
carrying the type name and raw data.  :func:`render_block_safe` also turns a
renderer failure into a diagnostic so one bad block cannot stop the rest of
the document from rendering.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from casestudy.block_types import (
    ComparisonBlock,
    ComparisonRow,
    CtaBlock,
    DecodedBlock,
    GalleryBlock,
    MalformedBlock,
    MarketingBlock,
    MetricsBlock,
    PricingBlock,
    QuoteBlock,
    TechStackBlock,
    TimelineBlock,
    UnknownBlock,
)
from casestudy.render_types import RenderDirective

logger = logging.getLogger(__name__)

FEATURED_TIER_INDEX = 1
DEFAULT_COMPARISON_COLUMNS = ("Category", "Ours", "Competitors", "Winner")

# category -> (icon, accent)
_TECH_CATEGORY_STYLE: dict[str, tuple[str, str]] = {
    "frontend": ("code", "blue"),
    "backend": ("server", "green"),
    "database": ("database", "purple"),
    "ai/ml": ("zap", "orange"),
    "deployment": ("globe", "red"),
    "security": ("shield", "green"),
}
_DEFAULT_TECH_STYLE = ("code", "blue")


def tech_category_style(category: str) -> tuple[str, str]:
    """Icon name and accent colour for a technology-stack category."""
    return _TECH_CATEGORY_STYLE.get(category.strip().lower(), _DEFAULT_TECH_STYLE)


def performance_accent(performance: str) -> str:
    value = performance.lower()
    if "high" in value:
        return "green"
    if "medium" in value:
        return "yellow"
    if "low" in value:
        return "red"
    return "blue"


def _table_props(block: DecodedBlock) -> dict[str, Any]:
    return {"headers": list(block.headers), "rows": [list(r) for r in block.rows]}


# ---------------------------------------------------------------------------
# Per-type renderers
# ---------------------------------------------------------------------------


def _render_pricing(block: PricingBlock) -> RenderDirective:
    tiers = tuple(
        RenderDirective("pricing_tier", {
            "plan": tier.plan,
            "price": tier.price,
            "features": tier.features,
            "target_market": tier.target_market,
            "featured": idx == FEATURED_TIER_INDEX,
            "badge": "Most Popular" if idx == FEATURED_TIER_INDEX else "",
        })
        for idx, tier in enumerate(block.tiers)
    )
    return RenderDirective(
        "pricing_table",
        {"title": "Pricing Model Analysis", "headers": list(block.headers)},
        children=tiers,
    )


def _render_techstack(block: TechStackBlock) -> RenderDirective:
    cards: list[RenderDirective] = []
    for item in block.items:
        icon, accent = tech_category_style(item.category)
        cards.append(RenderDirective("tech_card", {
            "category": item.category,
            "technology": item.technology,
            "reason": item.reason,
            "icon": icon,
            "accent": accent,
        }))
    return RenderDirective("tech_stack", {"title": "Technology Stack"}, children=tuple(cards))


def _render_marketing(block: MarketingBlock) -> RenderDirective:
    sites = tuple(
        RenderDirective("marketing_site", {
            "site": site.site,
            "url": site.url,
            "purpose": site.purpose,
            "performance": site.performance,
            "accent": performance_accent(site.performance),
        })
        for site in block.sites
    )
    return RenderDirective("marketing_sites", {"title": "Key Marketing Sites"}, children=sites)


def _winner_label(row: ComparisonRow, columns: tuple[str, ...]) -> str:
    if row.winner == "subject":
        return columns[1]
    if row.winner == "competitor":
        return "Competitor"
    if row.winner == "equal":
        return "Equal"
    return ""


def _render_comparison(block: ComparisonBlock) -> RenderDirective:
    columns = block.headers if len(block.headers) >= 4 and all(block.headers[:4]) else DEFAULT_COMPARISON_COLUMNS
    columns = tuple(columns[:4])
    rows = tuple(
        RenderDirective("comparison_row", {
            "category": row.category,
            "value": row.value,
            "competitor_value": row.competitor_value,
            "winner": row.winner,
            "winner_label": _winner_label(row, columns),
        })
        for row in block.comparisons
    )
    return RenderDirective(
        "comparison_table",
        {"title": "Performance Comparison", "columns": list(columns)},
        children=rows,
        collection=True,
    )


def _render_metrics(block: MetricsBlock) -> RenderDirective:
    icon = "dollar-sign" if block.block_type == "kpis" else ""
    cards = tuple(
        RenderDirective("metric_card", {
            "label": metric.label,
            "value": metric.value,
            "trend": metric.trend,
            "trend_direction": metric.trend_direction,
            "icon": icon,
        })
        for metric in block.metrics
    )
    return RenderDirective(
        "metrics_grid",
        {"columns": min(4, len(cards)), "source_type": block.block_type},
        children=cards,
        collection=True,
    )


def _render_gallery(block: GalleryBlock) -> RenderDirective:
    images = tuple(
        RenderDirective("gallery_image", {"url": image.url, "alt": image.alt})
        for image in block.images
    )
    return RenderDirective("gallery", {"columns": min(3, len(images))}, children=images, collection=True)


def _render_timeline(block: TimelineBlock) -> RenderDirective:
    last = len(block.phases) - 1
    phases = tuple(
        RenderDirective("timeline_phase", {
            "phase": phase.phase,
            "title": phase.title,
            "duration": phase.duration,
            "description": phase.description,
            "is_last": idx == last,
        })
        for idx, phase in enumerate(block.phases)
    )
    return RenderDirective("timeline", {}, children=phases)


def _render_quote(block: QuoteBlock) -> RenderDirective:
    attribution = " at ".join(part for part in (block.role, block.company) if part)
    return RenderDirective("quote_card", {
        "quote": block.quote,
        "author": block.author,
        "role": block.role,
        "company": block.company,
        "attribution": attribution,
    })


def _render_cta(block: CtaBlock) -> RenderDirective:
    return RenderDirective("cta_banner", {
        "title": block.title,
        "subtitle": block.subtitle,
        "cta_text": block.cta_text,
        "href": block.href,
    })


def _render_unknown(block: UnknownBlock) -> RenderDirective:
    return RenderDirective("diagnostic", {
        "reason": "unknown_block_type",
        "block_type": block.block_type,
        "message": f"Unknown block type: {block.block_type}",
        **_table_props(block),
    })


def _render_malformed(block: MalformedBlock) -> RenderDirective:
    return RenderDirective("diagnostic", {
        "reason": "malformed_block",
        "block_type": block.block_type,
        "message": f"Malformed :::{block.block_type} block: {block.reason}",
        "raw_body": block.raw_body,
        **_table_props(block),
    })


_RENDERERS: dict[type, Callable[[Any], RenderDirective]] = {
    PricingBlock: _render_pricing,
    TechStackBlock: _render_techstack,
    MarketingBlock: _render_marketing,
    ComparisonBlock: _render_comparison,
    MetricsBlock: _render_metrics,
    GalleryBlock: _render_gallery,
    TimelineBlock: _render_timeline,
    QuoteBlock: _render_quote,
    CtaBlock: _render_cta,
    UnknownBlock: _render_unknown,
    MalformedBlock: _render_malformed,
}


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def render_block(block: DecodedBlock) -> RenderDirective:
    """Map a decoded block onto its render directive.

    Raises:
        TypeError: If *block* is not one of the decoded block variants.
    """
    renderer = _RENDERERS.get(type(block))
    if renderer is None:
        raise TypeError(f"no renderer for {type(block).__name__}")
    return renderer(block)


def render_block_safe(block: DecodedBlock) -> RenderDirective:
    """Like :func:`render_block`, but a failing renderer yields a diagnostic."""
    try:
        return render_block(block)
    except Exception as exc:
        logger.warning("Failed to render :::%s block: %s", block.block_type, exc, exc_info=True)
        return RenderDirective("diagnostic", {
            "reason": "render_error",
            "block_type": block.block_type,
            "message": f"Error rendering block {block.block_type}: {exc}",
            **_table_props(block),
        })
