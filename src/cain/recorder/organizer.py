"""Persist analysed items into a record directory under content-hash names."""

from __future__ import annotations

import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

import httpx

from cain.analysis.models import FileItem, TempItem, TextItem, UrlItem
from cain.errors import IOFailureError, InvalidInputError, NetworkError, NotFoundError

from .codec import METADATA_FILE, Metadata, ResourceMetadata, write_metadata_file
from .hashing import hash_bytes, hash_file

LOGGER = logging.getLogger(__name__)

MAX_DOWNLOAD_BYTES = 1_000_000_000
DEFAULT_DOWNLOAD_TIMEOUT_SECONDS = 60.0

_EXTENSIONS = {
    "video/mp4": "mp4",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/heic": "heic",
    "image/webp": "webp",
}


def extension_for(content_type: str | None) -> str:
    """Map a ``Content-Type`` header value to a file extension (``bin`` by default)."""
    if not content_type:
        return "bin"
    mime = content_type.split(";", 1)[0].strip().lower()
    return _EXTENSIONS.get(mime, "bin")


def move_file(source: Path, destination: Path) -> None:
    """Rename ``source`` to ``destination``, copying then deleting across filesystems.

    Raises:
        IOFailureError: If both the rename and the copy fallback fail.
    """
    try:
        source.replace(destination)
        return
    except OSError:
        LOGGER.debug("Rename of %s failed; falling back to copy", source)

    try:
        shutil.copyfile(source, destination)
    except OSError as exc:
        raise IOFailureError(f"Failed to copy file {source} --> {destination}: {exc}") from exc
    try:
        source.unlink()
    except OSError as exc:
        raise IOFailureError(f"Failed to delete file {source}: {exc}") from exc


class Recorder:
    """Store record resources and write the record's metadata document."""

    def __init__(
        self,
        http_client: httpx.Client | None = None,
        *,
        max_download_bytes: int = MAX_DOWNLOAD_BYTES,
        timeout: float = DEFAULT_DOWNLOAD_TIMEOUT_SECONDS,
    ) -> None:
        self._http = http_client or httpx.Client(
            timeout=httpx.Timeout(timeout), follow_redirects=True
        )
        self._max_download_bytes = max_download_bytes

    def create_record(
        self,
        items: Iterable[TempItem],
        title: str,
        source_url: str,
        directory: Path,
    ) -> Metadata:
        """Record ``items`` into ``directory`` and write its metadata document.

        Args:
            items: Analysed payloads in the order they should be listed.
            title: Record title.
            source_url: URL the record was captured from.
            directory: Existing directory that receives the record.

        Returns:
            Metadata: The document that was written.

        Raises:
            NotFoundError: If ``directory`` does not exist.
            CainError: On any I/O or network failure; files already written stay in place.
        """
        if not directory.is_dir():
            raise NotFoundError(f"Record directory does not exist: {directory}")

        resources: list[ResourceMetadata] = []
        for item in items:
            stored = self.record_resource(item, directory)
            url = item.url if isinstance(item, UrlItem) else None
            resources.append(ResourceMetadata(filename=stored.name, url=url))

        metadata = Metadata(
            title=title,
            time=datetime.now(timezone.utc),
            url=source_url,
            resources=resources,
        )
        write_metadata_file(metadata, directory / METADATA_FILE)
        LOGGER.info("Recorded %d resource(s) for %s in %s", len(resources), source_url, directory)
        return metadata

    def record_resource(self, item: TempItem, directory: Path) -> Path:
        """Store one item in ``directory`` and return the created path."""
        if isinstance(item, FileItem):
            return self._record_file(item.path, directory)
        if isinstance(item, TextItem):
            return self._record_text(item.text, directory)
        if isinstance(item, UrlItem):
            return self.download(item.url, directory)
        raise InvalidInputError(f"Unsupported item: {item!r}")

    def download(self, url: str, directory: Path) -> Path:
        """Download ``url`` into ``directory`` named after the hash of its body.

        Raises:
            NetworkError: On transport failures, unsuccessful responses, or oversized bodies.
            IOFailureError: If the file cannot be written.
        """
        try:
            with self._http.stream("GET", url, follow_redirects=True) as response:
                if not response.is_success:
                    raise NetworkError(
                        f"Failed to download from {url}: HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                data = bytearray()
                for chunk in response.iter_bytes():
                    data.extend(chunk)
                    if len(data) > self._max_download_bytes:
                        raise NetworkError(
                            f"Download from {url} exceeds {self._max_download_bytes} bytes"
                        )
                final_url = str(response.url)
            head = self._http.head(final_url, follow_redirects=True)
        except httpx.HTTPError as exc:
            raise NetworkError(f"Failed to download from {url}: {exc}") from exc
        if not head.is_success:
            raise NetworkError(
                f"Failed to get header from {url}: HTTP {head.status_code}",
                status_code=head.status_code,
            )

        payload = bytes(data)
        extension = extension_for(head.headers.get("content-type"))
        target = directory / f"{hash_bytes(payload)}.{extension}"
        try:
            target.write_bytes(payload)
        except OSError as exc:
            raise IOFailureError(f"Failed to write download file for {url}: {exc}") from exc
        LOGGER.debug("Downloaded %s to %s", url, target.name)
        return target

    def close(self) -> None:
        self._http.close()

    def _record_file(self, path: Path, directory: Path) -> Path:
        if not path.name:
            raise InvalidInputError(f"Invalid file name for file resource at {path}")
        digest = hash_file(path)
        # The dot is kept even without an extension, so every name reads <hash>.<ext>.
        target = directory / f"{digest}.{path.suffix.lstrip('.')}"
        move_file(path, target)
        return target

    def _record_text(self, text: str, directory: Path) -> Path:
        payload = text.encode("utf-8")
        target = directory / f"{hash_bytes(payload)}.txt"
        try:
            target.write_bytes(payload)
        except OSError as exc:
            raise IOFailureError(f"Failed to write file at {target}: {exc}") from exc
        return target


def create_record(
    items: Iterable[TempItem],
    title: str,
    source_url: str,
    directory: Path,
    *,
    http_client: httpx.Client | None = None,
) -> Metadata:
    """Record ``items`` into ``directory`` with a default :class:`Recorder`."""
    recorder = Recorder(http_client)
    try:
        return recorder.create_record(items, title, source_url, directory)
    finally:
        if http_client is None:
            recorder.close()


__all__ = [
    "Recorder",
    "create_record",
    "extension_for",
    "move_file",
    "MAX_DOWNLOAD_BYTES",
]
