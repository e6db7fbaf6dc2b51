"""Fenced block scanner for case-study documents.

Splits raw document text into an ordered list of prose and block segments.
A fenced block is::

    :::<typeName>
    body line
    ...
    :::

Scanning is a line-oriented state machine with two states:

- ``in_prose`` -- an opening line (exactly ``:::<typeName>``) enters a block;
  every other line is prose.
- ``in_block`` -- the first line that is exactly ``:::`` closes the block.
  A ``:::<name>`` line inside a block is body text (blocks do not nest) and
  produces a ``nested_opener`` warning.

A block still open at end of input is not a block: its opening line and
everything after it stay prose (``unterminated_block`` warning).

Coverage: concatenating ``source_text`` over the returned segments
reproduces the input exactly.  Delimiter lines are excluded from prose text
and block bodies but counted in the character offsets.
"""
from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Literal

from casestudy.diagnostics import Diagnostic

OPENING_RE = re.compile(r":::(\w+)[ \t]*")
CLOSING_RE = re.compile(r":::[ \t]*")

type ScanState = Literal["in_prose", "in_block"]


# ---------------------------------------------------------------------------
# Segment types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ProseSegment:
    """Formatted-text span between blocks (or document edges)."""

    text: str
    char_start: int
    char_end: int

    def __post_init__(self) -> None:
        if self.char_start < 0:
            raise ValueError(f"char_start must be >= 0, got {self.char_start}")
        if self.char_end - self.char_start != len(self.text):
            raise ValueError("prose span length must equal len(text)")

    @property
    def position(self) -> int:
        return self.char_start

    @property
    def source_text(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class BlockSegment:
    """A fenced block: declared type, raw body and delimiter lines."""

    block_type: str
    body: str
    char_start: int     # start of the opening delimiter line
    char_end: int       # end of the closing ":::" (its line break is prose)
    body_start: int
    body_end: int
    opening: str        # raw opening line, line break included
    closing: str        # raw closing line, line break excluded

    def __post_init__(self) -> None:
        if not self.block_type:
            raise ValueError("block_type cannot be empty")
        if self.char_start < 0:
            raise ValueError(f"char_start must be >= 0, got {self.char_start}")
        if not self.char_start <= self.body_start <= self.body_end <= self.char_end:
            raise ValueError("block offsets must be ordered start <= body <= end")
        if self.body_end - self.body_start != len(self.body):
            raise ValueError("body span length must equal len(body)")

    @property
    def position(self) -> int:
        return self.char_start

    @property
    def source_text(self) -> str:
        return self.opening + self.body + self.closing


type Segment = ProseSegment | BlockSegment


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Ordered segments plus scanner warnings."""

    segments: tuple[Segment, ...]
    warnings: tuple[Diagnostic, ...] = ()

    @property
    def blocks(self) -> tuple[BlockSegment, ...]:
        return tuple(s for s in self.segments if isinstance(s, BlockSegment))

    @property
    def prose(self) -> tuple[ProseSegment, ...]:
        return tuple(s for s in self.segments if isinstance(s, ProseSegment))


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------


def _iter_lines(text: str) -> Iterator[tuple[int, int, str]]:
    """Yield ``(start, end, line)`` with *line* stripped of its line break."""
    pos = 0
    n = len(text)
    while pos < n:
        nl = text.find("\n", pos)
        end = n if nl < 0 else nl + 1
        yield pos, end, text[pos:end].rstrip("\r\n")
        pos = end


def scan_segments(text: str) -> ScanResult:
    """Split *text* into prose and block segments in document order."""
    segments: list[Segment] = []
    warnings: list[Diagnostic] = []

    state: ScanState = "in_prose"
    prose_start = 0
    block_type = ""
    open_start = open_end = 0

    for start, end, line in _iter_lines(text):
        if state == "in_prose":
            m = OPENING_RE.fullmatch(line)
            if m:
                state = "in_block"
                block_type = m.group(1)
                open_start, open_end = start, end
            continue

        if CLOSING_RE.fullmatch(line):
            close_end = start + len(line)
            if open_start > prose_start:
                segments.append(ProseSegment(
                    text=text[prose_start:open_start],
                    char_start=prose_start,
                    char_end=open_start,
                ))
            segments.append(BlockSegment(
                block_type=block_type,
                body=text[open_end:start],
                char_start=open_start,
                char_end=close_end,
                body_start=open_end,
                body_end=start,
                opening=text[open_start:open_end],
                closing=text[start:close_end],
            ))
            prose_start = close_end
            state = "in_prose"
        elif OPENING_RE.fullmatch(line):
            warnings.append(Diagnostic(
                "nested_opener",
                f"{line.strip()!r} inside :::{block_type} block treated as body text",
                start,
            ))

    if state == "in_block":
        warnings.append(Diagnostic(
            "unterminated_block",
            f":::{block_type} block has no closing ':::' line; kept as prose",
            open_start,
        ))

    if prose_start < len(text):
        segments.append(ProseSegment(
            text=text[prose_start:],
            char_start=prose_start,
            char_end=len(text),
        ))

    return ScanResult(segments=tuple(segments), warnings=tuple(warnings))


def reconstruct(segments: Sequence[Segment]) -> str:
    """Rebuild the source document from its segments."""
    return "".join(s.source_text for s in segments)
