"""Builds the ERD comparison prompt from collected schema sources."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..models import PromptContext, SchemaFile
from .constants import (
    DIAGRAM_KEYWORD,
    MAX_SCHEMA_BYTES,
    PRIMARY_SCHEMA_PATH,
    SENTINEL,
    SNIPPET_DELIMITER,
    TEMPLATE_NAME,
)

MATERIAL_RULES: tuple[str, ...] = (
    "Added/removed entities (tables)",
    "Added/removed columns",
    "Column type/nullable/default changes",
    "Primary/unique/index constraints changed",
    "Foreign keys/relationships added/removed",
    "Relationship cardinality changed (e.g., one-to-many vs many-to-many)",
    "Entity/column rename **only** if schema clearly implies the rename (not just cosmetic)",
)

COSMETIC_RULES: tuple[str, ...] = (
    "Sort entities and attributes alphabetically for stability.",
    "Normalize whitespace and indentation.",
    "Ignore comment text and layout/alignment differences.",
)


def truncate_utf8(text: str, max_bytes: int) -> str:
    """Trim ``text`` to at most ``max_bytes`` UTF-8 bytes without splitting a character."""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    if max_bytes <= 0:
        return ""
    cut = max_bytes
    # Step back over continuation bytes (10xxxxxx) so the cut lands on a character start.
    while cut > 0 and (encoded[cut] & 0xC0) == 0x80:
        cut -= 1
    return encoded[:cut].decode("utf-8")


def is_primary_schema(path: str) -> bool:
    normalized = path.replace("\\", "/")
    return normalized == PRIMARY_SCHEMA_PATH or normalized.endswith(f"/{PRIMARY_SCHEMA_PATH}")


class PromptBuilder:
    """Renders a deterministic prompt embedding the output contract for the generator."""

    def __init__(
        self,
        templates_dir: Path | None = None,
        *,
        max_schema_bytes: int = MAX_SCHEMA_BYTES,
    ) -> None:
        self.templates_dir = templates_dir or Path(__file__).with_name("templates")
        self.max_schema_bytes = max_schema_bytes
        self._env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
            undefined=StrictUndefined,
        )

    def build(self, context: PromptContext) -> str:
        """Return the full prompt text for ``context``."""
        template = self._env.get_template(TEMPLATE_NAME)
        rendered = template.render(
            repository=context.repository,
            sentinel=SENTINEL,
            keyword=DIAGRAM_KEYWORD,
            material_rules=MATERIAL_RULES,
            cosmetic_rules=COSMETIC_RULES,
            current_diagram=context.current_diagram,
            schema_snippets=self.render_schema_snippets(context.schema_files),
        )
        return rendered.strip()

    def render_schema_snippets(self, files: Sequence[SchemaFile]) -> str:
        """Join path-prefixed file contents and clamp them to the byte budget."""
        joined = SNIPPET_DELIMITER.join(
            f"# {schema_file.path}\n{schema_file.content}" for schema_file in self.order_files(files)
        )
        return truncate_utf8(joined, self.max_schema_bytes)

    @staticmethod
    def order_files(files: Sequence[SchemaFile]) -> List[SchemaFile]:
        """Move the primary schema definition first; everything else keeps arrival order."""
        return sorted(files, key=lambda schema_file: 0 if is_primary_schema(schema_file.path) else 1)


__all__ = ["COSMETIC_RULES", "MATERIAL_RULES", "PromptBuilder", "is_primary_schema", "truncate_utf8"]
