"""Render sequence types produced by the document assembler."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from casestudy.block_types import DecodedBlock, decoded_block_to_dict
from casestudy.diagnostics import Diagnostic, diagnostic_to_dict
from casestudy.prose import ensure_heading_ids
from casestudy.slugs import HeadingRecord, SlugRegistry


@dataclass(frozen=True, slots=True)
class RenderDirective:
    """Instruction for the caller to mount one visual component.

    ``collection`` directives carry one child per decoded row; single
    directives carry their data in ``props`` only.
    """

    component: str
    props: Mapping[str, Any] = field(default_factory=dict)
    children: tuple[RenderDirective, ...] = ()
    collection: bool = False

    def __post_init__(self) -> None:
        if not self.component:
            raise ValueError("component cannot be empty")

    @property
    def is_diagnostic(self) -> bool:
        return self.component == "diagnostic"


@dataclass(frozen=True, slots=True)
class ProseItem:
    """Formatted prose chunk in the render sequence."""

    markdown: str
    html: str
    headings: tuple[HeadingRecord, ...]
    position: int


@dataclass(frozen=True, slots=True)
class BlockItem:
    """Decoded and dispatched block in the render sequence."""

    block_type: str
    block: DecodedBlock
    directive: RenderDirective
    position: int


type RenderItem = ProseItem | BlockItem


@dataclass(frozen=True, slots=True)
class RenderedDocument:
    """Ordered render sequence for one document."""

    items: tuple[RenderItem, ...]
    headings: tuple[HeadingRecord, ...]
    warnings: tuple[Diagnostic, ...] = ()

    def __post_init__(self) -> None:
        positions = [item.position for item in self.items]
        if positions != sorted(positions):
            raise ValueError("render items must be in document order")

    @property
    def prose_items(self) -> tuple[ProseItem, ...]:
        return tuple(i for i in self.items if isinstance(i, ProseItem))

    @property
    def block_items(self) -> tuple[BlockItem, ...]:
        return tuple(i for i in self.items if isinstance(i, BlockItem))

    def heading_slugs(self) -> tuple[str, ...]:
        return tuple(h.slug for h in self.headings if h.slug)

    def prose_html(self) -> str:
        """Joined prose markup, with the fallback id pass applied."""
        joined = "\n".join(item.html for item in self.prose_items)
        return ensure_heading_ids(joined, registry=SlugRegistry())


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def directive_to_dict(directive: RenderDirective) -> dict[str, object]:
    """Serialize a directive tree to a deterministic JSON-safe dict."""
    return {
        "component": directive.component,
        "collection": directive.collection,
        "props": {k: _json_safe(v) for k, v in sorted(directive.props.items())},
        "children": [directive_to_dict(child) for child in directive.children],
    }


def heading_to_dict(heading: HeadingRecord) -> dict[str, object]:
    return {"text": heading.text, "level": heading.level, "slug": heading.slug}


def rendered_document_to_dict(document: RenderedDocument) -> dict[str, object]:
    items: list[dict[str, object]] = []
    for item in document.items:
        if isinstance(item, ProseItem):
            items.append({
                "type": "prose",
                "position": item.position,
                "markdown": item.markdown,
                "html": item.html,
                "headings": [heading_to_dict(h) for h in item.headings],
            })
        else:
            items.append({
                "type": "block",
                "position": item.position,
                "block_type": item.block_type,
                "block": decoded_block_to_dict(item.block),
                "directive": directive_to_dict(item.directive),
            })
    return {
        "items": items,
        "headings": [heading_to_dict(h) for h in document.headings],
        "warnings": [diagnostic_to_dict(w) for w in document.warnings],
    }


def _json_safe(value: Any) -> Any:
    if isinstance(value, tuple | list):
        return [_json_safe(v) for v in value]
    if isinstance(value, Mapping):
        return {str(k): _json_safe(v) for k, v in value.items()}
    return value
