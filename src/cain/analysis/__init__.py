"""Resource analysis: turn a URL into payloads for the recorder."""

from .base import ResourceAnalyser
from .models import FileItem, TempItem, TextItem, UrlItem
from .webpage import WebpageCapture

__all__ = [
    "ResourceAnalyser",
    "FileItem",
    "UrlItem",
    "TextItem",
    "TempItem",
    "WebpageCapture",
]
