"""Shared constants for the ERD prompt and its output contract."""

from __future__ import annotations

SENTINEL = "NO_CHANGE"
DIAGRAM_KEYWORD = "erDiagram"

MAX_SCHEMA_BYTES = 250_000
PRIMARY_SCHEMA_PATH = "db/schema.rb"
SNIPPET_DELIMITER = "\n\n---\n\n"

TEMPLATE_NAME = "erd.md.j2"


__all__ = [
    "DIAGRAM_KEYWORD",
    "MAX_SCHEMA_BYTES",
    "PRIMARY_SCHEMA_PATH",
    "SENTINEL",
    "SNIPPET_DELIMITER",
    "TEMPLATE_NAME",
]
