"""Pipeline orchestration for the ERD freshness check."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from .classifier import ChangeClassifier
from .collector import MODEL_LAYER_GLOBS, SchemaCollector
from .config import ConfigurationError, ErdCheckConfig
from .llm.runner import LLMRunner
from .logging import get_logger
from .models import CheckOutcome, ComparisonResult, PromptContext
from .prompting.builder import PromptBuilder
from .reporting import Reporter, build_summary


class MaterialChangeDetected(RuntimeError):
    """Raised when the stored ERD must be updated by hand."""

    def __init__(self, diagram: str, output_path: Path, summary: str) -> None:
        super().__init__(f"ERD out of date: update {output_path}")
        self.diagram = diagram
        self.output_path = output_path
        self.summary = summary


def raise_for_change(outcome: CheckOutcome) -> None:
    """Turn a material-change outcome into a :class:`MaterialChangeDetected` error."""
    result = outcome.result
    if result.is_material and result.diagram is not None:
        summary = outcome.summary or build_summary(result.diagram, outcome.output_path)
        raise MaterialChangeDetected(result.diagram, outcome.output_path, summary)


class Orchestrator:
    """Coordinates collection, prompting, generation and classification."""

    def __init__(
        self,
        collector: SchemaCollector | None = None,
        prompt_builder: PromptBuilder | None = None,
        llm_runner: LLMRunner | None = None,
        classifier: ChangeClassifier | None = None,
        reporter: Reporter | None = None,
    ) -> None:
        self.collector = collector or SchemaCollector()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.classifier = classifier or ChangeClassifier()
        self.reporter = reporter or Reporter()
        self.logger = get_logger("orchestrator")
        self._llm_runner = llm_runner

    def run_check(self, config: ErdCheckConfig) -> CheckOutcome:
        """Run the full check and return its outcome without raising on material change."""
        self.logger.info("Starting ERD check for %s", config.root)
        globs = self.resolve_globs(config)
        schema_files = self.collector.collect(config.root, globs)
        if not schema_files:
            raise ConfigurationError("No schema-like files found. Adjust 'schema_globs'.")
        self.logger.info("Collected %d schema files", len(schema_files))

        current = self._read_current_diagram(config.output_path)
        self.logger.info("Detected current ERD as\n%s", current)

        context = PromptContext(
            repository=config.repository,
            schema_files=tuple(schema_files),
            current_diagram=current,
        )
        prompt = self.prompt_builder.build(context)
        self.logger.debug("Prompt is %d characters", len(prompt))

        response = self._resolve_llm_runner(config).run(prompt)
        self.logger.info("Received the following response from the model\n%s", response)

        result = self.classifier.classify(response, current)
        for warning in result.warnings:
            self.reporter.annotate("warning", warning)

        return self._report(result, config.output_path, len(schema_files))

    @staticmethod
    def resolve_globs(config: ErdCheckConfig) -> List[str]:
        globs = list(config.schema_globs)
        if config.include_models:
            globs.extend(pattern for pattern in MODEL_LAYER_GLOBS if pattern not in globs)
        return globs

    def _report(self, result: ComparisonResult, output_path: Path, file_count: int) -> CheckOutcome:
        if not result.is_material:
            self.reporter.info(f"ERD at {output_path} is up to date ({result.reason}).")
            return CheckOutcome(result=result, output_path=output_path, schema_files=file_count)

        summary = build_summary(result.diagram or "", output_path)
        self.reporter.write_summary(summary)
        self.reporter.error(
            f"Material ERD change detected. Update {output_path} with the ERD shown in the job summary."
        )
        return CheckOutcome(
            result=result,
            output_path=output_path,
            schema_files=file_count,
            summary=summary,
        )

    def _read_current_diagram(self, path: Path) -> Optional[str]:
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ConfigurationError(f"Stored ERD at {path} is not valid UTF-8") from exc

    def _resolve_llm_runner(self, config: ErdCheckConfig) -> LLMRunner:
        if self._llm_runner is not None:
            return self._llm_runner
        return LLMRunner(
            config.model,
            api_key=config.api_key,
            base_url=config.base_url,
            request_timeout=config.request_timeout,
        )


__all__ = ["MaterialChangeDetected", "Orchestrator", "raise_for_change"]
