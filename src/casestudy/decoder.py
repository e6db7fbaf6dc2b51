"""Per-type decoding of fenced block bodies.

Generic table grammar (used by every type without a bespoke grammar):
    - blank lines are ignored;
    - the first line is a comma-separated header row;
    - every following line is a comma-separated data row;
    - cells are trimmed.

Bespoke grammars:
    - ``quote``: ``key: value`` lines (key case-folded, value may contain ``:``).
    - ``timeline``: no header; ``phase, title, duration, description...`` per
      line, everything after the third comma rejoined as the description.

Positional types (pricing, techstack, marketing, comparison, metrics/kpis,
gallery, cta) use the generic grammar and map each data row onto a fixed
field list.  Missing trailing cells decode as empty strings; surplus cells are
rejoined into the row's free-text field, or reported as ``long_row``.

Decoding is total: :func:`decode_block` returns a result for any input and
reports problems as diagnostics.  A body with no usable rows decodes to a
:class:`MalformedBlock`.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from casestudy.block_types import (
    ComparisonBlock,
    ComparisonRow,
    CtaBlock,
    DecodedBlock,
    GalleryBlock,
    GalleryImage,
    MalformedBlock,
    MarketingBlock,
    MarketingSite,
    Metric,
    MetricsBlock,
    PricingBlock,
    PricingTier,
    QuoteBlock,
    Row,
    TechStackBlock,
    TechStackItem,
    TimelineBlock,
    TimelinePhase,
    TrendDirection,
    UnknownBlock,
    Winner,
)
from casestudy.diagnostics import Diagnostic

ESCAPED_DELIMITER = "\\:::"

_QUOTE_KEYS = frozenset({"quote", "author", "role", "company"})
_SUBJECT_WINNERS = frozenset({"subject", "ours", "us", "we"})
_COMPETITOR_WINNERS = frozenset({"competitor", "competitors", "them"})
_EQUAL_WINNERS = frozenset({"equal", "tie", "same", "even", "both", "="})
_UP_MARKERS = ("+", "↑", "▲", "up")
_DOWN_MARKERS = ("-", "−", "↓", "▼", "down")


@dataclass(frozen=True, slots=True)
class DecodeResult:
    """A decoded block plus any diagnostics raised while decoding it."""

    block: DecodedBlock
    warnings: tuple[Diagnostic, ...] = ()


# ---------------------------------------------------------------------------
# Line / cell helpers
# ---------------------------------------------------------------------------


def body_lines(body: str) -> list[str]:
    """Non-blank, trimmed body lines with ``\\:::`` unescaped to ``:::``."""
    lines: list[str] = []
    for raw in body.splitlines():
        line = raw.strip()
        if not line:
            continue
        if line.startswith(ESCAPED_DELIMITER):
            line = line[1:]
        lines.append(line)
    return lines


def split_row(line: str) -> Row:
    return tuple(cell.strip() for cell in line.split(","))


def split_table(lines: list[str]) -> tuple[Row, tuple[Row, ...]]:
    """Header row plus data rows (generic grammar)."""
    if not lines:
        return (), ()
    return split_row(lines[0]), tuple(split_row(line) for line in lines[1:])


def _pad(row: Row, width: int) -> Row:
    if len(row) >= width:
        return row[:width]
    return row + ("",) * (width - len(row))


def _fold_surplus(row: Row, width: int, free_text: int) -> Row:
    """Rejoin cells past *width* into the free-text field at *free_text*."""
    end = free_text + len(row) - width + 1
    return row[:free_text] + (", ".join(row[free_text:end]),) + row[end:]


def _usable_rows(
    block_type: str,
    rows: tuple[Row, ...],
    width: int,
    warnings: list[Diagnostic],
    *,
    free_text: int | None = None,
) -> list[Row]:
    """Rows with at least one non-empty cell, fitted to *width*.

    Short rows are padded.  Long rows have their surplus cells rejoined into
    the *free_text* field (commas inside prose); types without such a field
    report ``long_row`` and keep the first *width* cells.
    """
    usable: list[Row] = []
    for row in rows:
        if not any(row):
            warnings.append(Diagnostic(
                "unusable_row", f":::{block_type} row has no values; skipped",
            ))
            continue
        if len(row) < width:
            warnings.append(Diagnostic(
                "short_row",
                f":::{block_type} row {', '.join(row)!r} has {len(row)} of "
                f"{width} fields; missing fields left empty",
            ))
        elif len(row) > width:
            if free_text is not None:
                row = _fold_surplus(row, width, free_text)
            else:
                warnings.append(Diagnostic(
                    "long_row",
                    f":::{block_type} row {', '.join(row)!r} has {len(row)} fields, "
                    f"expected {width}; extra fields dropped",
                ))
        usable.append(_pad(row, width))
    return usable


def _malformed(
    block_type: str,
    body: str,
    reason: str,
    *,
    headers: Row = (),
    rows: tuple[Row, ...] = (),
) -> MalformedBlock:
    return MalformedBlock(
        block_type=block_type,
        raw_body=body,
        reason=reason,
        headers=headers,
        rows=rows,
    )


# ---------------------------------------------------------------------------
# Field normalization
# ---------------------------------------------------------------------------


def normalize_winner(raw: str, subject_names: Iterable[str] = ()) -> Winner | None:
    """Map a comparison "winner" cell onto subject/competitor/equal.

    *subject_names* are extra spellings of the product the case study is
    about (the decoder passes the table's value-column header).  Values
    outside every vocabulary return None.
    """
    value = raw.strip().lower()
    if not value:
        return None
    if value in _COMPETITOR_WINNERS:
        return "competitor"
    if value in _EQUAL_WINNERS:
        return "equal"
    if value in _SUBJECT_WINNERS or value in {n.strip().lower() for n in subject_names if n.strip()}:
        return "subject"
    return None


def trend_direction(trend: str) -> TrendDirection:
    value = trend.strip().lower()
    if value.startswith(_UP_MARKERS):
        return "up"
    if value.startswith(_DOWN_MARKERS):
        return "down"
    return "neutral"


# ---------------------------------------------------------------------------
# Per-type decoders
# ---------------------------------------------------------------------------

type _Decoder = Callable[[str, str, list[str], list[Diagnostic]], DecodedBlock]


def _decode_pricing(block_type: str, body: str, lines: list[str], warnings: list[Diagnostic]) -> DecodedBlock:
    headers, rows = split_table(lines)
    usable = _usable_rows(block_type, rows, 4, warnings, free_text=2)
    if not usable:
        return _malformed(block_type, body, "no pricing rows", headers=headers, rows=rows)
    return PricingBlock(
        block_type=block_type,
        headers=headers,
        rows=rows,
        tiers=tuple(PricingTier(*row) for row in usable),
    )


def _decode_techstack(block_type: str, body: str, lines: list[str], warnings: list[Diagnostic]) -> DecodedBlock:
    headers, rows = split_table(lines)
    usable = _usable_rows(block_type, rows, 3, warnings, free_text=2)
    if not usable:
        return _malformed(block_type, body, "no technology rows", headers=headers, rows=rows)
    return TechStackBlock(
        block_type=block_type,
        headers=headers,
        rows=rows,
        items=tuple(TechStackItem(*row) for row in usable),
    )


def _decode_marketing(block_type: str, body: str, lines: list[str], warnings: list[Diagnostic]) -> DecodedBlock:
    headers, rows = split_table(lines)
    usable = _usable_rows(block_type, rows, 4, warnings, free_text=2)
    if not usable:
        return _malformed(block_type, body, "no marketing site rows", headers=headers, rows=rows)
    return MarketingBlock(
        block_type=block_type,
        headers=headers,
        rows=rows,
        sites=tuple(MarketingSite(*row) for row in usable),
    )


def _decode_comparison(block_type: str, body: str, lines: list[str], warnings: list[Diagnostic]) -> DecodedBlock:
    headers, rows = split_table(lines)
    usable = _usable_rows(block_type, rows, 4, warnings)
    if not usable:
        return _malformed(block_type, body, "no comparison rows", headers=headers, rows=rows)
    subject_names = headers[1:2]
    comparisons: list[ComparisonRow] = []
    for category, value, competitor_value, winner in usable:
        normalized = normalize_winner(winner, subject_names)
        if normalized is None and winner:
            warnings.append(Diagnostic(
                "unknown_winner",
                f":::{block_type} winner {winner!r} for {category!r} is not recognized; no badge shown",
            ))
        comparisons.append(ComparisonRow(
            category=category,
            value=value,
            competitor_value=competitor_value,
            winner=normalized,
        ))
    return ComparisonBlock(
        block_type=block_type,
        headers=headers,
        rows=rows,
        comparisons=tuple(comparisons),
    )


def _decode_metrics(block_type: str, body: str, lines: list[str], warnings: list[Diagnostic]) -> DecodedBlock:
    headers, rows = split_table(lines)
    usable = _usable_rows(block_type, rows, 3, warnings)
    if not usable:
        return _malformed(block_type, body, "no metric rows", headers=headers, rows=rows)
    return MetricsBlock(
        block_type=block_type,
        headers=headers,
        rows=rows,
        metrics=tuple(
            Metric(label=label, value=value, trend=trend, trend_direction=trend_direction(trend))
            for label, value, trend in usable
        ),
    )


def _decode_gallery(block_type: str, body: str, lines: list[str], warnings: list[Diagnostic]) -> DecodedBlock:
    headers, rows = split_table(lines)
    images: list[GalleryImage] = []
    for url, alt in _usable_rows(block_type, rows, 2, warnings, free_text=1):
        if not url:
            warnings.append(Diagnostic(
                "unusable_row", f":::{block_type} image {alt!r} has no URL; skipped",
            ))
            continue
        images.append(GalleryImage(url=url, alt=alt))
    if not images:
        return _malformed(block_type, body, "no gallery images", headers=headers, rows=rows)
    return GalleryBlock(block_type=block_type, headers=headers, rows=rows, images=tuple(images))


def _decode_cta(block_type: str, body: str, lines: list[str], warnings: list[Diagnostic]) -> DecodedBlock:
    headers, rows = split_table(lines)
    usable = _usable_rows(block_type, rows, 4, warnings, free_text=1)
    if not usable:
        return _malformed(block_type, body, "no call-to-action row", headers=headers, rows=rows)
    if len(usable) > 1:
        warnings.append(Diagnostic(
            "extra_rows",
            f":::{block_type} uses its first row only; {len(usable) - 1} extra row(s) ignored",
        ))
    title, subtitle, cta_text, href = usable[0]
    return CtaBlock(
        block_type=block_type,
        headers=headers,
        rows=rows,
        title=title,
        subtitle=subtitle,
        cta_text=cta_text,
        href=href,
    )


def _decode_quote(block_type: str, body: str, lines: list[str], warnings: list[Diagnostic]) -> DecodedBlock:
    pairs: list[Row] = []
    values: dict[str, str] = {}
    for line in lines:
        key, sep, value = line.partition(":")
        key = key.strip().lower()
        value = value.strip()
        if not sep or not key or not value:
            warnings.append(Diagnostic(
                "invalid_quote_line", f"{line!r} is not a 'key: value' line; skipped",
            ))
            continue
        pairs.append((key, value))
        if key not in _QUOTE_KEYS:
            warnings.append(Diagnostic(
                "unknown_quote_key", f"quote key {key!r} is not used; skipped",
            ))
            continue
        values[key] = value

    if "quote" not in values or "author" not in values:
        return _malformed(block_type, body, "quote block needs 'quote' and 'author'", rows=tuple(pairs))
    return QuoteBlock(
        block_type=block_type,
        headers=(),
        rows=tuple(pairs),
        quote=values["quote"],
        author=values["author"],
        role=values.get("role", ""),
        company=values.get("company", ""),
    )


def _decode_timeline(block_type: str, body: str, lines: list[str], warnings: list[Diagnostic]) -> DecodedBlock:
    rows: list[Row] = []
    phases: list[TimelinePhase] = []
    for line in lines:
        parts = split_row(line)
        rows.append(parts)
        if not any(parts):
            continue
        if len(parts) < 4:
            warnings.append(Diagnostic(
                "short_row",
                f":::{block_type} line {line!r} is missing fields; missing fields left empty",
            ))
        phase, title, duration = _pad(parts, 3)
        phases.append(TimelinePhase(
            phase=phase,
            title=title,
            duration=duration,
            description=", ".join(parts[3:]),
        ))
    if not phases:
        return _malformed(block_type, body, "no timeline phases", rows=tuple(rows))
    return TimelineBlock(block_type=block_type, headers=(), rows=tuple(rows), phases=tuple(phases))


_DECODERS: dict[str, _Decoder] = {
    "pricing": _decode_pricing,
    "techstack": _decode_techstack,
    "marketing": _decode_marketing,
    "comparison": _decode_comparison,
    "metrics": _decode_metrics,
    "kpis": _decode_metrics,
    "quote": _decode_quote,
    "timeline": _decode_timeline,
    "gallery": _decode_gallery,
    "cta": _decode_cta,
}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def is_known_block_type(block_type: str) -> bool:
    return block_type.strip().lower() in _DECODERS


def decode_block(block_type: str, body: str) -> DecodeResult:
    """Decode a fenced block body according to its declared type.

    Args:
        block_type: Type name from the opening ``:::<typeName>`` line.
        body: Raw body text between the delimiter lines.

    Returns:
        A :class:`DecodeResult`.  Unregistered types decode to
        :class:`UnknownBlock` with the generic table grammar; bodies with
        no usable data decode to :class:`MalformedBlock`.
    """
    name = block_type.strip().lower()
    lines = body_lines(body)
    if not lines:
        return DecodeResult(
            block=_malformed(name, body, "empty body"),
            warnings=(Diagnostic("empty_block", f":::{name} block has an empty body"),),
        )

    decoder = _DECODERS.get(name)
    if decoder is None:
        headers, rows = split_table(lines)
        return DecodeResult(
            block=UnknownBlock(block_type=name, headers=headers, rows=rows),
            warnings=(Diagnostic("unknown_block_type", f"no renderer registered for :::{name}"),),
        )

    warnings: list[Diagnostic] = []
    block = decoder(name, body, lines, warnings)
    return DecodeResult(block=block, warnings=tuple(warnings))
