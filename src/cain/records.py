"""Record catalog: enumerate an archive directory and create new records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

import httpx

from cain.analysis import ResourceAnalyser, WebpageCapture
from cain.categories import Category, root_category
from cain.config import CainConfig, resolve_root_dir
from cain.errors import InvalidInputError, IOFailureError, NotFoundError
from cain.recorder import (
    METADATA_FILE,
    Metadata,
    Recorder,
    check_xml_text,
    read_metadata_file,
)
from cain.runtime import RuntimeCache
from cain.tree import Tree
from cain.twitter import build_client

LOGGER = logging.getLogger(__name__)

TWITTER_HOSTS = frozenset({"twitter.com", "www.twitter.com"})


@dataclass(frozen=True)
class ListItem:
    """A category or record, identified by its path relative to the archive root."""

    kind: Literal["category", "record"]
    path: Path

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "path": self.path.as_posix()}


def is_record(directory: Path) -> bool:
    """Return True when ``directory`` holds a metadata document."""
    return (directory / METADATA_FILE).is_file()


def _item_for(category: Path, root_dir: Path) -> ListItem:
    kind: Literal["category", "record"] = "record" if is_record(root_dir / category) else "category"
    return ListItem(kind, category)


def _subdirectories(directory: Path) -> list[Path]:
    try:
        return sorted(entry for entry in directory.iterdir() if entry.is_dir())
    except FileNotFoundError as exc:
        raise NotFoundError(f"No such category: {directory}") from exc
    except OSError as exc:
        raise IOFailureError(f"Failed to access directory at {directory}: {exc}") from exc


def list_items(category: Path, root_dir: Path) -> list[ListItem]:
    """List the sub-categories and records directly under ``category``.

    A record lists as itself.

    Raises:
        NotFoundError: If the category directory does not exist.
    """
    current = _item_for(category, root_dir)
    if current.kind == "record":
        return [current]
    return [
        _item_for(category / entry.name, root_dir)
        for entry in _subdirectories(root_dir / category)
    ]


def list_all(category: Path, root_dir: Path) -> list[ListItem]:
    """List every record and empty category under ``category``, recursively."""
    items = list_items(category, root_dir)
    if not items:
        return [ListItem("category", category)]
    result: list[ListItem] = []
    for item in items:
        if item.kind == "category":
            result.extend(list_all(item.path, root_dir))
        else:
            result.append(item)
    return result


def directory_category_tree(root_dir: Path) -> Tree[Category]:
    """Build the category hierarchy from the directories under ``root_dir``.

    Directories holding a record are not categories. Ids are assigned in
    sorted walk order starting at 1.
    """
    tree: Tree[Category] = Tree(root_category())
    next_id = 1

    def _walk(directory: Path, parent_id: int) -> None:
        nonlocal next_id
        for entry in _subdirectories(directory):
            if is_record(entry):
                continue
            category = Category(id=next_id, name=entry.name)
            next_id += 1
            tree.add_node(category, parent_id)
            _walk(entry, category.id)

    _walk(root_dir, tree.root.id)
    return tree


def select_analyser(
    url: str,
    config: CainConfig,
    *,
    cache: RuntimeCache | None = None,
) -> ResourceAnalyser:
    """Choose the analyser for ``url`` by host.

    Raises:
        InvalidInputError: If ``url`` is not an absolute URL with a host.
    """
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise InvalidInputError(f"Invalid URL: {url}")
    host = parsed.hostname
    if not host:
        raise InvalidInputError("URL should have a host")
    if host in TWITTER_HOSTS:
        return build_client(config.twitter, cache=cache)
    return WebpageCapture(
        download_fonts=config.capture.download_fonts,
        disable_js=config.capture.disable_js,
        command=config.capture.command,
    )


def _validate_title(title: str) -> None:
    if not title.strip() or title in (".", ".."):
        raise InvalidInputError("Record title must not be empty")
    if "/" in title or "\\" in title:
        raise InvalidInputError(f"Record title must not contain path separators: {title}")
    check_xml_text(title, "title")


def _validate_category(category: str) -> None:
    path = Path(category)
    if path.is_absolute() or ".." in path.parts:
        raise InvalidInputError(f"Category must stay inside the archive root: {category}")


def make_record(
    url: str,
    title: str,
    category: str,
    config: CainConfig,
    *,
    analyser: ResourceAnalyser | None = None,
    http_client: httpx.Client | None = None,
) -> Path:
    """Capture ``url`` and store it as ``<root>/<category>/<title>``.

    Returns:
        Path: Directory of the new record.

    Raises:
        InvalidInputError: For malformed URLs, titles or categories.
        CainError: On analysis or recording failures.
    """
    _validate_title(title)
    _validate_category(category)
    owned = analyser is None
    analyser = analyser or select_analyser(url, config)
    try:
        items = analyser.analyse(url)
    finally:
        if owned:
            analyser.close()
    LOGGER.info("Analysed %s into %d item(s)", url, len(items))

    full_path = resolve_root_dir(config) / category / title
    try:
        full_path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise IOFailureError(f"Failed to create directory at {full_path}: {exc}") from exc

    recorder = Recorder(
        http_client,
        max_download_bytes=config.download.max_bytes,
        timeout=config.download.timeout_seconds,
    )
    try:
        recorder.create_record(items, title, url, full_path)
    finally:
        if http_client is None:
            recorder.close()
    return full_path


def read_record(record: Path, root_dir: Path) -> Metadata:
    """Return the metadata of the record at ``record`` (relative to ``root_dir``).

    Raises:
        NotFoundError: If ``record`` is not a record directory.
    """
    directory = root_dir / record
    if not is_record(directory):
        raise NotFoundError(f"Not a record: {record}")
    return read_metadata_file(directory / METADATA_FILE)


__all__ = [
    "ListItem",
    "TWITTER_HOSTS",
    "directory_category_tree",
    "is_record",
    "list_all",
    "list_items",
    "make_record",
    "read_record",
    "select_analyser",
]
