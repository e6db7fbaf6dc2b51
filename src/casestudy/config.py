"""Rendering configuration.

All knobs have defaults matching the reference behaviour, so
``RenderConfig()`` is what :func:`casestudy.assembler.render_document` uses
when no config is given.  A config can also be loaded from a JSON file::

    {"dedupe_slugs": false, "active_offset": 80}
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from casestudy.io_utils import load_json

_MARKDOWN_PRESETS = {"commonmark", "default", "zero"}


@dataclass(frozen=True, slots=True)
class RenderConfig:
    """Options for the prose formatter, assembler and TOC."""

    legacy_id_prefix: str = "heading-"
    dedupe_slugs: bool = True
    active_offset: float = 100.0
    markdown_preset: str = "commonmark"
    enable_tables: bool = True
    drop_malformed_blocks: bool = True

    def __post_init__(self) -> None:
        if self.markdown_preset not in _MARKDOWN_PRESETS:
            raise ValueError(
                f"markdown_preset must be one of {sorted(_MARKDOWN_PRESETS)}, "
                f"got {self.markdown_preset!r}",
            )
        if self.active_offset < 0:
            raise ValueError(f"active_offset must be >= 0, got {self.active_offset}")

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> RenderConfig:
        """Build a config from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in payload.items() if k in known}
        if "active_offset" in kwargs:
            kwargs["active_offset"] = float(kwargs["active_offset"])
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_CONFIG = RenderConfig()


def load_config(path: Path) -> RenderConfig:
    """Load a :class:`RenderConfig` from a JSON object file."""
    payload = load_json(path)
    if not isinstance(payload, dict):
        raise ValueError(f"config file {path} must contain a JSON object")
    return RenderConfig.from_dict(payload)
