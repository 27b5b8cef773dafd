"""Decides whether a generated diagram differs materially from the stored one.

Classification runs in two layers. The first trusts the output contract: an
exact ``NO_CHANGE`` sentinel ends the decision. The second re-checks any other
response by comparing normalized text, so a generator that echoes an
equivalent diagram instead of the sentinel still passes.
"""

from __future__ import annotations

from typing import List, Optional

from .logging import get_logger
from .models import ComparisonResult
from .prompting.constants import DIAGRAM_KEYWORD, SENTINEL


# Label for responses that match neither the sentinel nor the diagram form.
CONTRACT_VIOLATION = "ContractViolation"


def is_sentinel(response: str) -> bool:
    return response.strip().lower() == SENTINEL.lower()


def matches_contract(response: str) -> bool:
    """Return True when the response is the sentinel or starts with the diagram keyword."""
    if is_sentinel(response):
        return True
    return response.strip().lower().startswith(DIAGRAM_KEYWORD.lower())


def normalize_diagram(text: str) -> str:
    """Collapse line endings, indentation, blank lines and case."""
    unified = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [line.strip() for line in unified.split("\n")]
    return "\n".join(line for line in lines if line).lower()


class ChangeClassifier:
    """Classifies generator output against the stored diagram."""

    def __init__(self) -> None:
        self.logger = get_logger("classifier")

    def classify(self, response: str, current: Optional[str]) -> ComparisonResult:
        if is_sentinel(response):
            self.logger.info("Model reported %s; ERD is up to date.", SENTINEL)
            return ComparisonResult.no_change("sentinel")

        warnings: List[str] = []
        if not matches_contract(response):
            message = (
                f"Model did not return {SENTINEL} or an '{DIAGRAM_KEYWORD}' block. "
                "Treating as material change."
            )
            self.logger.warning(message)
            warnings.append(f"{CONTRACT_VIOLATION}: {message}")

        normalized = normalize_diagram(response)
        # An empty reply never confirms an empty or missing stored diagram.
        if normalized and normalize_diagram(current or "") == normalized:
            self.logger.info("Normalized ERDs match; treating as %s.", SENTINEL)
            return ComparisonResult.no_change("normalized", warnings)

        return ComparisonResult.material_change(response, warnings=warnings)


__all__ = [
    "ChangeClassifier",
    "CONTRACT_VIOLATION",
    "is_sentinel",
    "matches_contract",
    "normalize_diagram",
]
