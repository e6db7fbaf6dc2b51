"""Document assembler: raw case-study text -> ordered render sequence.

Pipeline:
    1. Scan the document into prose and block segments.
    2. Format each prose segment (Markdown -> HTML, heading identifiers).
    3. Decode each block segment and dispatch it to a render directive.
    4. Order the resulting items by source position.

Block-level problems never abort the document.  Malformed blocks are dropped
(the prose around them is untouched), unknown types render as diagnostic
placeholders, and every problem is reported in ``RenderedDocument.warnings``.
A document with no recognizable blocks renders as a single prose item.

Heading identifiers are allocated by one :class:`SlugRegistry` shared across
prose segments in document order, so duplicate headings in different
segments still get distinct identifiers.  Block decoding and dispatch are
independent per segment.
"""
from __future__ import annotations

from casestudy.block_types import MalformedBlock
from casestudy.config import DEFAULT_CONFIG, RenderConfig
from casestudy.decoder import decode_block
from casestudy.diagnostics import Diagnostic
from casestudy.dispatch import render_block_safe
from casestudy.prose import format_prose
from casestudy.render_types import BlockItem, ProseItem, RenderedDocument, RenderItem
from casestudy.scanner import BlockSegment, ProseSegment, scan_segments
from casestudy.slugs import HeadingRecord, SlugRegistry


def _render_prose(
    segment: ProseSegment,
    registry: SlugRegistry,
    config: RenderConfig,
    warnings: list[Diagnostic],
) -> ProseItem:
    formatted = format_prose(segment.text, registry=registry, config=config)
    warnings.extend(w.at(segment.char_start) for w in formatted.warnings)
    return ProseItem(
        markdown=segment.text.strip(),
        html=formatted.html,
        headings=formatted.headings,
        position=segment.char_start,
    )


def _render_block(
    segment: BlockSegment,
    config: RenderConfig,
    warnings: list[Diagnostic],
) -> BlockItem | None:
    result = decode_block(segment.block_type, segment.body)
    warnings.extend(w.at(segment.char_start) for w in result.warnings)

    block = result.block
    if isinstance(block, MalformedBlock) and config.drop_malformed_blocks:
        warnings.append(Diagnostic(
            "malformed_block_dropped",
            f":::{block.block_type} block dropped: {block.reason}",
            segment.char_start,
        ))
        return None

    directive = render_block_safe(block)
    if directive.props.get("reason") == "render_error":
        warnings.append(Diagnostic(
            "render_error", str(directive.props["message"]), segment.char_start,
        ))
    return BlockItem(
        block_type=block.block_type,
        block=block,
        directive=directive,
        position=segment.char_start,
    )


def render_document(text: str, *, config: RenderConfig | None = None) -> RenderedDocument:
    """Render a case-study document into an ordered render sequence.

    Args:
        text: Raw document text (Markdown with ``:::type`` fenced blocks).
        config: Rendering options; defaults to :data:`DEFAULT_CONFIG`.

    Returns:
        A :class:`RenderedDocument` whose items follow source order.
    """
    config = config or DEFAULT_CONFIG
    scan = scan_segments(text)
    warnings: list[Diagnostic] = list(scan.warnings)
    registry = SlugRegistry(dedupe=config.dedupe_slugs)

    items: list[RenderItem] = []
    for segment in scan.segments:
        if isinstance(segment, ProseSegment):
            if not segment.text.strip():
                continue
            items.append(_render_prose(segment, registry, config, warnings))
        else:
            block_item = _render_block(segment, config, warnings)
            if block_item is not None:
                items.append(block_item)

    items.sort(key=lambda item: item.position)
    headings: list[HeadingRecord] = []
    for item in items:
        if isinstance(item, ProseItem):
            headings.extend(item.headings)

    warnings.sort(key=lambda w: -1 if w.position is None else w.position)
    return RenderedDocument(items=tuple(items), headings=tuple(headings), warnings=tuple(warnings))
