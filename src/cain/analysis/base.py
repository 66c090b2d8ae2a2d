"""Resource analyser capability."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .models import TempItem


class ResourceAnalyser(ABC):
    """Figure out the resources behind an original URL.

    For each resource an analyser provides either a temporary local file, a
    URL where the resource can be downloaded directly, or inline text. It does
    not deal with categories or record metadata.
    """

    @abstractmethod
    def analyse(self, url: str) -> list[TempItem]:
        """Return the ordered payloads for ``url``.

        Raises:
            CainError: On network failure, unexpected responses, or unsupported content.
        """

    def close(self) -> None:
        """Release network clients or other resources held by the analyser."""
