"""Core data models shared across erdcheck components."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence


@dataclass(frozen=True)
class SchemaFile:
    """A schema-like source file collected from the repository."""

    path: str
    size: int
    content: str


@dataclass(frozen=True)
class PromptContext:
    """Everything the prompt builder needs to compose a single prompt."""

    repository: str
    schema_files: Sequence[SchemaFile]
    current_diagram: Optional[str] = None


class ChangeKind(str, Enum):
    NO_CHANGE = "no_change"
    MATERIAL_CHANGE = "material_change"


@dataclass(frozen=True)
class ComparisonResult:
    """Outcome of comparing the generated diagram with the stored one."""

    kind: ChangeKind
    reason: str
    diagram: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def no_change(cls, reason: str, warnings: Sequence[str] = ()) -> "ComparisonResult":
        return cls(kind=ChangeKind.NO_CHANGE, reason=reason, warnings=list(warnings))

    @classmethod
    def material_change(
        cls, diagram: str, reason: str = "material", warnings: Sequence[str] = ()
    ) -> "ComparisonResult":
        return cls(
            kind=ChangeKind.MATERIAL_CHANGE,
            reason=reason,
            diagram=diagram,
            warnings=list(warnings),
        )

    @property
    def is_material(self) -> bool:
        return self.kind is ChangeKind.MATERIAL_CHANGE


@dataclass
class CheckOutcome:
    """Result of a full erdcheck run."""

    result: ComparisonResult
    output_path: Path
    schema_files: int
    summary: Optional[str] = None
