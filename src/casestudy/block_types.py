"""Decoded block records, one variant per block type.

The set of variants is closed.  A type name that is not registered becomes an
explicit :class:`UnknownBlock`, and a body with nothing usable in it becomes a
:class:`MalformedBlock`.  Every variant keeps the raw ``headers``/``rows``
table it was decoded from so diagnostics can show the original data.
"""
from __future__ import annotations

from dataclasses import dataclass, fields, is_dataclass
from typing import ClassVar, Literal


type BlockKind = Literal[
    "pricing",
    "techstack",
    "marketing",
    "comparison",
    "metrics",
    "kpis",
    "quote",
    "timeline",
    "gallery",
    "cta",
]
type Winner = Literal["subject", "competitor", "equal"]
type TrendDirection = Literal["up", "down", "neutral"]
type Row = tuple[str, ...]

BLOCK_KINDS: tuple[BlockKind, ...] = (
    "pricing",
    "techstack",
    "marketing",
    "comparison",
    "metrics",
    "kpis",
    "quote",
    "timeline",
    "gallery",
    "cta",
)


# ---------------------------------------------------------------------------
# Row records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PricingTier:
    plan: str
    price: str
    features: str
    target_market: str


@dataclass(frozen=True, slots=True)
class TechStackItem:
    category: str
    technology: str
    reason: str


@dataclass(frozen=True, slots=True)
class MarketingSite:
    site: str
    url: str
    purpose: str
    performance: str


@dataclass(frozen=True, slots=True)
class ComparisonRow:
    category: str
    value: str
    competitor_value: str
    winner: Winner | None


@dataclass(frozen=True, slots=True)
class Metric:
    label: str
    value: str
    trend: str
    trend_direction: TrendDirection = "neutral"


@dataclass(frozen=True, slots=True)
class TimelinePhase:
    phase: str
    title: str
    duration: str
    description: str


@dataclass(frozen=True, slots=True)
class GalleryImage:
    url: str
    alt: str


# ---------------------------------------------------------------------------
# Block variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PricingBlock:
    kind: ClassVar[str] = "pricing"

    block_type: str
    headers: Row
    rows: tuple[Row, ...]
    tiers: tuple[PricingTier, ...]


@dataclass(frozen=True, slots=True)
class TechStackBlock:
    kind: ClassVar[str] = "techstack"

    block_type: str
    headers: Row
    rows: tuple[Row, ...]
    items: tuple[TechStackItem, ...]


@dataclass(frozen=True, slots=True)
class MarketingBlock:
    kind: ClassVar[str] = "marketing"

    block_type: str
    headers: Row
    rows: tuple[Row, ...]
    sites: tuple[MarketingSite, ...]


@dataclass(frozen=True, slots=True)
class ComparisonBlock:
    kind: ClassVar[str] = "comparison"

    block_type: str
    headers: Row
    rows: tuple[Row, ...]
    comparisons: tuple[ComparisonRow, ...]


@dataclass(frozen=True, slots=True)
class MetricsBlock:
    """Shared by ``metrics`` and ``kpis`` blocks."""

    kind: ClassVar[str] = "metrics"

    block_type: str
    headers: Row
    rows: tuple[Row, ...]
    metrics: tuple[Metric, ...]


@dataclass(frozen=True, slots=True)
class QuoteBlock:
    kind: ClassVar[str] = "quote"

    block_type: str
    headers: Row
    rows: tuple[Row, ...]   # (key, value) pairs as written
    quote: str
    author: str
    role: str = ""
    company: str = ""

    def __post_init__(self) -> None:
        if not self.quote:
            raise ValueError("quote cannot be empty")


@dataclass(frozen=True, slots=True)
class TimelineBlock:
    kind: ClassVar[str] = "timeline"

    block_type: str
    headers: Row            # always empty; every line is a phase
    rows: tuple[Row, ...]
    phases: tuple[TimelinePhase, ...]


@dataclass(frozen=True, slots=True)
class GalleryBlock:
    kind: ClassVar[str] = "gallery"

    block_type: str
    headers: Row
    rows: tuple[Row, ...]
    images: tuple[GalleryImage, ...]


@dataclass(frozen=True, slots=True)
class CtaBlock:
    kind: ClassVar[str] = "cta"

    block_type: str
    headers: Row
    rows: tuple[Row, ...]
    title: str
    subtitle: str
    cta_text: str
    href: str


@dataclass(frozen=True, slots=True)
class UnknownBlock:
    """A structurally decoded block whose type has no renderer."""

    kind: ClassVar[str] = "unknown"

    block_type: str
    headers: Row
    rows: tuple[Row, ...]


@dataclass(frozen=True, slots=True)
class MalformedBlock:
    """A block whose body produced no usable data."""

    kind: ClassVar[str] = "malformed"

    block_type: str
    raw_body: str
    reason: str
    headers: Row = ()
    rows: tuple[Row, ...] = ()

    def __post_init__(self) -> None:
        if not self.reason:
            raise ValueError("reason cannot be empty")


type DecodedBlock = (
    PricingBlock
    | TechStackBlock
    | MarketingBlock
    | ComparisonBlock
    | MetricsBlock
    | QuoteBlock
    | TimelineBlock
    | GalleryBlock
    | CtaBlock
    | UnknownBlock
    | MalformedBlock
)


def decoded_block_to_dict(block: DecodedBlock) -> dict[str, object]:
    """Serialize a decoded block to a JSON-safe dict (``kind`` included)."""
    payload: dict[str, object] = {"kind": block.kind}
    for f in fields(block):
        payload[f.name] = _plain(getattr(block, f.name))
    return payload


def _plain(value: object) -> object:
    if isinstance(value, tuple):
        return [_plain(v) for v in value]
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    return value
