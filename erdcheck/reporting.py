"""Surfaces check results to the terminal and, under GitHub Actions, to the job."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Mapping, TextIO

from .logging import get_logger


def build_summary(diagram: str, output_path: Path | str) -> str:
    """Return the Markdown block shown when the stored ERD needs an update."""
    return "\n".join(
        [
            "### ERD requires update",
            "",
            "The generated ERD differs **materially** from the file in the repo.",
            f"Please update `{output_path}` to the following:",
            "",
            "```mermaid",
            diagram,
            "```",
        ]
    )


def _escape_command(message: str) -> str:
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class Reporter:
    """Writes log lines, workflow annotations and the job summary."""

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        stream: TextIO | None = None,
    ) -> None:
        env = os.environ if environ is None else environ
        self.annotations = env.get("GITHUB_ACTIONS", "").lower() == "true"
        summary = env.get("GITHUB_STEP_SUMMARY")
        self.summary_path = Path(summary) if summary else None
        self.stream = stream
        self.logger = get_logger("reporter")

    def info(self, message: str) -> None:
        self.logger.info(message)

    def warning(self, message: str) -> None:
        self.logger.warning(message)
        self.annotate("warning", message)

    def error(self, message: str) -> None:
        self.logger.error(message)
        self.annotate("error", message)

    def write_summary(self, markdown: str) -> bool:
        """Append ``markdown`` to the job summary file; returns False outside Actions."""
        if self.summary_path is None:
            return False
        with self.summary_path.open("a", encoding="utf-8") as handle:
            handle.write(markdown)
            if not markdown.endswith("\n"):
                handle.write("\n")
        return True

    def annotate(self, level: str, message: str) -> None:
        """Emit a workflow command annotation without logging it."""
        if not self.annotations:
            return
        stream = self.stream or sys.stdout
        stream.write(f"::{level}::{_escape_command(message)}\n")
        stream.flush()


__all__ = ["Reporter", "build_summary"]
