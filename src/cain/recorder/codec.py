"""Reading and writing the ``metadata.xml`` document of a record.

The reader is a small explicit state machine over start/text/end events
rather than a document model, so an unexpected element is always an error
instead of being silently skipped.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from enum import Enum, auto
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field

from cain.errors import IOFailureError, InvalidDocumentError, InvalidInputError, ParseError

METADATA_FILE = "metadata.xml"

Event = Tuple[str, str]

# Characters XML 1.0 documents cannot carry, even as character references.
_XML_ILLEGAL = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


class ResourceMetadata(BaseModel):
    """One stored resource of a record.

    Attributes:
        filename: Hash-derived name of the file inside the record directory.
        url: Original remote URL when the resource was downloaded.
    """

    filename: str
    url: Optional[str] = None


class Metadata(BaseModel):
    """Descriptive document stored alongside a record's resources."""

    title: str = ""
    time: datetime = Field(default_factory=lambda: datetime.fromtimestamp(0, tz=timezone.utc))
    url: str = ""
    resources: List[ResourceMetadata] = Field(default_factory=list)


class _State(Enum):
    TITLE = auto()
    TIME = auto()
    URL = auto()
    RESOURCES = auto()
    UNKNOWN = auto()
    STOP = auto()


class _ResourceState(Enum):
    FILENAME = auto()
    URL = auto()
    UNKNOWN = auto()
    STOP = auto()


def iter_events(document: str | bytes) -> Iterator[Event]:
    """Yield ``("start" | "text" | "end", value)`` events for ``document``.

    Text is reported only for elements without children, so indentation
    between elements never produces events.

    Raises:
        ParseError: If the document is not well-formed markup.
    """
    parser = ET.XMLPullParser(events=("start", "end"))
    try:
        parser.feed(document)
        parser.close()
    except ET.ParseError as exc:
        raise ParseError(f"Failed to parse XML: {exc}") from exc

    for kind, element in parser.read_events():
        if kind == "start":
            yield "start", element.tag
            continue
        if len(element) == 0 and element.text is not None:
            yield "text", element.text
        yield "end", element.tag


def parse_time(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, assuming UTC when no offset is given.

    Raises:
        ParseError: Naming ``value`` when it is not ISO-8601.
    """
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise ParseError(f"Invalid time string in XML: {value}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def read_metadata(events: Iterable[Event]) -> Metadata:
    """Run the metadata state machine over ``events``.

    Raises:
        InvalidDocumentError: On an element that is not part of the format.
        ParseError: On malformed times or a truncated document.
    """
    stream = iter(events)
    state = _State.UNKNOWN
    result = Metadata()

    for kind, value in stream:
        if kind == "start":
            if value == "metadata":
                continue
            if value == "title":
                state = _State.TITLE
            elif value == "time":
                state = _State.TIME
            elif value == "url":
                state = _State.URL
            elif value == "resources":
                state = _State.RESOURCES
            elif value == "resource":
                result.resources.append(_read_resource(stream))
            else:
                raise InvalidDocumentError(f"Invalid XML element: {value}")
        elif kind == "end":
            if value == "metadata":
                state = _State.STOP
                break
            state = _State.UNKNOWN
        elif kind == "text":
            if state is _State.TITLE:
                result.title = value
            elif state is _State.TIME:
                result.time = parse_time(value)
            elif state is _State.URL:
                result.url = value

    if state is not _State.STOP:
        raise ParseError("Metadata document ended before </metadata>")
    return result


def _read_resource(stream: Iterator[Event]) -> ResourceMetadata:
    state = _ResourceState.UNKNOWN
    filename = ""
    url: Optional[str] = None

    for kind, value in stream:
        if kind == "start":
            if value == "filename":
                state = _ResourceState.FILENAME
            elif value == "url":
                state = _ResourceState.URL
            else:
                raise InvalidDocumentError(f"Invalid element in resource: {value}")
        elif kind == "end":
            if value == "resource":
                state = _ResourceState.STOP
                break
            state = _ResourceState.UNKNOWN
        elif kind == "text":
            if state is _ResourceState.FILENAME:
                filename = value
            elif state is _ResourceState.URL:
                url = value

    if state is not _ResourceState.STOP:
        raise ParseError("Metadata document ended inside <resource>")
    return ResourceMetadata(filename=filename, url=url)


def check_xml_text(value: str, field: str) -> None:
    """Reject ``value`` if it holds characters a metadata document cannot store.

    Raises:
        InvalidInputError: Naming ``field`` and the offending character.
    """
    match = _XML_ILLEGAL.search(value)
    if match is not None:
        raise InvalidInputError(
            f"{field.capitalize()} contains a character not allowed in XML: {match.group()!r}"
        )


def _text_element(parent: ET.Element, tag: str, text: str) -> None:
    check_xml_text(text, tag)
    ET.SubElement(parent, tag).text = text


def render_metadata(metadata: Metadata) -> str:
    """Return the indented XML text for ``metadata``.

    Raises:
        InvalidInputError: If a field holds characters XML 1.0 cannot carry.
    """
    root = ET.Element("metadata")
    _text_element(root, "title", metadata.title)
    _text_element(root, "time", metadata.time.isoformat())
    _text_element(root, "url", metadata.url)
    resources = ET.SubElement(root, "resources")
    for resource in metadata.resources:
        node = ET.SubElement(resources, "resource")
        _text_element(node, "filename", resource.filename)
        if resource.url is not None:
            _text_element(node, "url", resource.url)
    ET.indent(root, space="  ")
    # Parsers normalize raw carriage returns to newlines; keep them as references.
    return ET.tostring(root, encoding="unicode").replace("\r", "&#13;") + "\n"


def parse_metadata(document: str | bytes) -> Metadata:
    """Decode a metadata document from text."""
    return read_metadata(iter_events(document))


def write_metadata_file(metadata: Metadata, path: Path) -> None:
    """Write ``metadata`` to ``path``.

    Raises:
        IOFailureError: If the file cannot be written.
    """
    try:
        path.write_text(render_metadata(metadata), encoding="utf-8")
    except OSError as exc:
        raise IOFailureError(f"Failed to open XML file at {path}: {exc}") from exc


def read_metadata_file(path: Path) -> Metadata:
    """Read the metadata document at ``path``.

    Raises:
        IOFailureError: If the file cannot be read.
        ParseError: If the document is malformed.
    """
    try:
        document = path.read_bytes()
    except OSError as exc:
        raise IOFailureError(f"Failed to open XML file at {path}: {exc}") from exc
    return parse_metadata(document)


__all__ = [
    "METADATA_FILE",
    "Metadata",
    "ResourceMetadata",
    "check_xml_text",
    "iter_events",
    "parse_metadata",
    "parse_time",
    "read_metadata",
    "read_metadata_file",
    "render_metadata",
    "write_metadata_file",
]
