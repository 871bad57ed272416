"""Metadata sources outside the filesystem layout: saved PDFs and Finder tags."""

from .pdf import PdfMetadata, PdfMetadataReader
from .tags import FinderTagStore, NullTagStore, TagReader, parse_model_state

__all__ = [
    "PdfMetadata",
    "PdfMetadataReader",
    "FinderTagStore",
    "NullTagStore",
    "TagReader",
    "parse_model_state",
]
