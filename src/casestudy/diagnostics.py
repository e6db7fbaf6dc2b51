"""Structured warning channel shared by the rendering pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal


type DiagnosticCode = Literal[
    "nested_opener",
    "unterminated_block",
    "empty_block",
    "short_row",
    "long_row",
    "unusable_row",
    "extra_rows",
    "unknown_winner",
    "unknown_quote_key",
    "invalid_quote_line",
    "unknown_block_type",
    "malformed_block_dropped",
    "render_error",
    "slug_collision",
    "empty_slug",
]


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """One non-fatal problem found while rendering a document."""

    code: DiagnosticCode
    message: str
    position: int | None = None  # char offset in the source document

    def __post_init__(self) -> None:
        if not self.message:
            raise ValueError("message cannot be empty")
        if self.position is not None and self.position < 0:
            raise ValueError(f"position must be >= 0, got {self.position}")

    def at(self, position: int) -> Diagnostic:
        """Return a copy anchored at *position* unless already anchored."""
        if self.position is not None:
            return self
        return replace(self, position=position)


def diagnostic_to_dict(diagnostic: Diagnostic) -> dict[str, object]:
    return {
        "code": diagnostic.code,
        "message": diagnostic.message,
        "position": diagnostic.position,
    }
