"""Transient payloads produced by resource analysers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union


@dataclass(frozen=True)
class FileItem:
    """A local file that the recorder will move into the record directory."""

    path: Path


@dataclass(frozen=True)
class UrlItem:
    """A remote resource that the recorder will download."""

    url: str


@dataclass(frozen=True)
class TextItem:
    """Inline text stored as a ``.txt`` resource."""

    text: str


TempItem = Union[FileItem, UrlItem, TextItem]

__all__ = ["FileItem", "UrlItem", "TextItem", "TempItem"]
