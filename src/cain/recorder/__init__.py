"""Content-addressed recorder and its metadata document codec."""

from .codec import (
    METADATA_FILE,
    Metadata,
    ResourceMetadata,
    check_xml_text,
    parse_metadata,
    read_metadata_file,
    render_metadata,
    write_metadata_file,
)
from .hashing import hash_bytes, hash_file
from .organizer import Recorder, create_record, extension_for, move_file

__all__ = [
    "METADATA_FILE",
    "Metadata",
    "ResourceMetadata",
    "Recorder",
    "check_xml_text",
    "create_record",
    "extension_for",
    "hash_bytes",
    "hash_file",
    "move_file",
    "parse_metadata",
    "read_metadata_file",
    "render_metadata",
    "write_metadata_file",
]
