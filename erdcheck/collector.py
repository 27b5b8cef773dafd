"""Schema source collection: glob matching over a gitignore-aware repository walk."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Sequence

from .config import split_globs
from .logging import get_logger
from .models import SchemaFile

MAX_FILE_BYTES = 1_000_000

# ORM model layers that describe the schema indirectly.
MODEL_LAYER_GLOBS: tuple[str, ...] = (
    "app/models/**/*.rb",
    "**/models.py",
    "**/models/**/*.py",
    "**/*.entity.ts",
    "**/entities/**/*.ts",
    "**/*.prisma",
)

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".tox",
    ".idea",
}


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool
    base: str = ""

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.base:
            # Rules from a nested .gitignore only see paths below their directory.
            prefix = f"{self.base}/"
            if not rel_path.startswith(prefix):
                return False
            rel_path = rel_path[len(prefix):]
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            if self.directory_only and rel_path.startswith(f"{self.pattern}/"):
                return True
            return False

        for part in rel_path.split("/"):
            if fnmatchcase(part, self.pattern):
                return True
        return False


def _build_ignore_rule(pattern: str, negate: bool = False, base: str = "") -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
        base=base,
    )


def _parse_gitignore(path: Path, base: str = "") -> List[IgnoreRule]:
    if not path.is_file():
        return []
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return []

    rules: List[IgnoreRule] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = _build_ignore_rule(line, negate=negate, base=base)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def glob_matches(path: str, pattern: str) -> bool:
    """Match a relative POSIX path against a glob where ``**`` spans zero or more segments."""
    normalized = path.replace("\\", "/").strip("/")
    cleaned = pattern.strip()
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    cleaned = cleaned.lstrip("/")
    if not cleaned:
        return False
    return _match_segments(normalized.split("/"), cleaned.split("/"))


def _match_segments(parts: Sequence[str], pattern_parts: Sequence[str]) -> bool:
    if not pattern_parts:
        return not parts
    head = pattern_parts[0]
    if head == "**":
        rest = pattern_parts[1:]
        return any(_match_segments(parts[index:], rest) for index in range(len(parts) + 1))
    if not parts:
        return False
    return fnmatchcase(parts[0], head) and _match_segments(parts[1:], pattern_parts[1:])


def _iter_files(root: Path, rules: Sequence[IgnoreRule]) -> Iterator[tuple[str, Path]]:
    inherited: Dict[str, List[IgnoreRule]] = {"": list(rules)}
    for dirpath, dirnames, filenames in os.walk(root):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

        active = inherited.pop(rel_dir, list(rules))
        if rel_dir:
            active = active + _parse_gitignore(current_dir / ".gitignore", base=rel_dir)

        kept_dirs = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS:
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if _should_ignore(rel_path, True, active):
                continue
            kept_dirs.append(name)
            inherited[rel_path] = active
        dirnames[:] = kept_dirs

        for filename in sorted(filenames):
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if _should_ignore(rel_path, False, active):
                continue
            yield rel_path, current_dir / filename


def _split_exclusions(patterns: Sequence[str]) -> tuple[List[str], List[str]]:
    """Separate ``!pattern`` exclusions from inclusion globs."""
    includes: List[str] = []
    excludes: List[str] = []
    for pattern in patterns:
        if pattern.startswith("!"):
            excluded = pattern[1:].strip()
            if excluded:
                excludes.append(excluded)
        else:
            includes.append(pattern)
    return includes, excludes


class SchemaCollector:
    """Resolves glob patterns into bounded-size schema sources."""

    def __init__(self, max_file_bytes: int = MAX_FILE_BYTES) -> None:
        self.max_file_bytes = max_file_bytes
        self.logger = get_logger("collector")

    def collect(self, root: Path | str, globs: str | Iterable[str]) -> List[SchemaFile]:
        """Return schema files under ``root`` matching any of ``globs``.

        Entries prefixed with ``!`` exclude matching paths. A root ``.gitignore``
        and any nested ones are honoured, each relative to its own directory.
        """
        root_path = Path(root).expanduser().resolve()
        if not root_path.is_dir():
            raise NotADirectoryError(f"Repository path is not a directory: {root}")

        patterns = split_globs(globs if isinstance(globs, str) else list(globs))
        includes, excludes = _split_exclusions(patterns)
        if not includes:
            return []

        rules = _parse_gitignore(root_path / ".gitignore")
        files: List[SchemaFile] = []
        for rel_path, path in _iter_files(root_path, rules):
            if not any(glob_matches(rel_path, pattern) for pattern in includes):
                continue
            if any(glob_matches(rel_path, pattern) for pattern in excludes):
                continue
            schema_file = self._read(rel_path, path)
            if schema_file is not None:
                files.append(schema_file)

        self.logger.debug("Collected %d schema files for %s", len(files), ", ".join(patterns))
        return files

    def _read(self, rel_path: str, path: Path) -> SchemaFile | None:
        try:
            if not path.is_file():
                return None
            size = path.stat().st_size
            if size >= self.max_file_bytes:
                self.logger.debug("Skipping %s (%d bytes exceeds limit)", rel_path, size)
                return None
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self.logger.debug("Skipping unreadable file %s: %s", rel_path, exc)
            return None
        return SchemaFile(path=rel_path, size=size, content=content)


__all__ = ["MAX_FILE_BYTES", "MODEL_LAYER_GLOBS", "SchemaCollector", "glob_matches"]
