"""Webpage capture through the external monolith snapshot tool."""

from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path

from cain.errors import IOFailureError, SnapshotError

from .base import ResourceAnalyser
from .models import FileItem, TempItem

LOGGER = logging.getLogger(__name__)

DEFAULT_OUTPUT_NAME = "cain-monolith.html"


class WebpageCapture(ResourceAnalyser):
    """Save a page and its assets into one HTML file."""

    def __init__(
        self,
        download_fonts: bool = False,
        disable_js: bool = True,
        *,
        command: str = "monolith",
        output_path: Path | None = None,
    ) -> None:
        self.download_fonts = download_fonts
        self.disable_js = disable_js
        self.command = command
        self.output_path = output_path or Path(tempfile.gettempdir()) / DEFAULT_OUTPUT_NAME

    def build_command(self, url: str) -> list[str]:
        """Return the argument vector used to snapshot ``url``."""
        args = [self.command, "--no-audio", "--isolate", "-o", str(self.output_path)]
        if not self.download_fonts:
            args.append("--no-fonts")
        if self.disable_js:
            args.append("--no-js")
        args.append(url)
        return args

    def analyse(self, url: str) -> list[TempItem]:
        args = self.build_command(url)
        LOGGER.debug("Running %s", " ".join(args))
        try:
            completed = subprocess.run(args, check=False)
        except OSError as exc:
            raise IOFailureError(f"Failed to run {self.command}: {exc}") from exc

        if completed.returncode != 0:
            raise SnapshotError(
                f"{self.command} failed with code {completed.returncode}",
                returncode=completed.returncode,
            )
        return [FileItem(self.output_path)]


__all__ = ["WebpageCapture", "DEFAULT_OUTPUT_NAME"]
