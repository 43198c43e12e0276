"""Processor - orchestrates the analysis consensus pipeline.

Pipeline per call:
1. Cache lookup (when an analysis input is given)
2. Validate each source
3. Combine sources into a consensus (multi-source only)
4. Validate the consensus, applying fallbacks when confidence is low
5. Cache valid results

Unexpected failures are caught here; callers always get a ProcessedResult.
"""

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional, Sequence, Union

from pydantic import ValidationError

from .cache import ResultCache
from .combiner import ResultCombiner
from .config import ConsensusConfig, get_config
from .fallback import FallbackResolver
from .schema import (
    AlternativeSuggestion,
    AnalysisInput,
    AppType,
    ClassificationResult,
    ConfidenceLevel,
    ProcessedResult,
    ValidationReport,
)
from .validator import ResultValidator

logger = logging.getLogger(__name__)

RawResult = Union[ClassificationResult, Mapping[str, Any]]
RawInput = Union[AnalysisInput, Mapping[str, Any]]

MAX_ALTERNATIVES_PER_FIELD = 2


class AnalysisProcessor:
    """Validates, combines, repairs and caches classification results."""

    def __init__(
        self,
        config: Optional[ConsensusConfig] = None,
        cache: Optional[ResultCache] = None,
    ):
        self.config = config or get_config()
        self.validator = ResultValidator()
        self.combiner = ResultCombiner()
        self.fallback = FallbackResolver()
        self.cache = cache or ResultCache.from_config(self.config.cache)

    @property
    def cache_enabled(self) -> bool:
        return self.config.processor.enable_cache

    @property
    def fallbacks_enabled(self) -> bool:
        return self.config.processor.enable_fallbacks

    def process(
        self, result: RawResult, analysis_input: Optional[RawInput] = None
    ) -> ProcessedResult:
        """Process a single classification result.

        Args:
            result: Classification result, as a model or a raw mapping.
            analysis_input: Raw input the result was derived from; enables
                caching when given.

        Returns:
            The processed result. Never raises.
        """
        parsed: Optional[ClassificationResult] = None
        try:
            parsed = self._parse(result)

            cached = self._lookup(analysis_input)
            if cached is not None:
                return cached

            if parsed is None:
                return ProcessedResult(result=None, report=self.validator.validate(result))

            return self._finalize(parsed, analysis_input)

        except Exception as e:
            logger.exception("Processing failed")
            return self._error_result(parsed, e)

    def process_many(
        self, results: Sequence[RawResult], analysis_input: Optional[RawInput] = None
    ) -> ProcessedResult:
        """Combine several classification results and process the consensus.

        Partial sources (missing sub-fields) take part in the vote. Sources
        that cannot be parsed, or that carry out-of-range values, are left
        out as long as at least one in-range source remains; their issues
        are reported as warnings on the consensus.
        """
        try:
            cached = self._lookup(analysis_input)
            if cached is not None:
                return cached

            parsed: list[ClassificationResult] = []
            valid: list[ClassificationResult] = []
            unparsed_warnings: list[str] = []
            invalid_warnings: list[str] = []

            for index, raw in enumerate(results, start=1):
                source = self._parse(raw)
                if source is None:
                    unparsed_warnings.extend(
                        f"Source {index} excluded: {issue}"
                        for issue in self.validator.validate(raw).issues
                    )
                    continue

                parsed.append(source)
                issues = self.validator.range_issues(source)
                if issues:
                    invalid_warnings.extend(
                        f"Source {index} excluded: {issue}" for issue in issues
                    )
                else:
                    valid.append(source)

            if not parsed:
                raise ValueError("No parseable classification results to combine")

            source_warnings = unparsed_warnings
            if valid:
                if len(valid) < len(parsed):
                    logger.info(
                        "Excluding %d invalid source(s) from consensus", len(parsed) - len(valid)
                    )
                source_warnings = unparsed_warnings + invalid_warnings
                parsed = valid

            combined = self.combiner.combine(parsed)
            return self._finalize(combined, analysis_input, source_warnings)

        except Exception as e:
            logger.exception("Multi-source processing failed")
            return self._error_result(None, e)

    def generate_alternatives(self, result: ClassificationResult) -> list[AlternativeSuggestion]:
        """List alternative interpretations of a result, most confident first."""
        alternatives = []

        if result.framework:
            for alt in result.framework.alternatives[:MAX_ALTERNATIVES_PER_FIELD]:
                alternatives.append(AlternativeSuggestion(
                    type="framework",
                    suggestion=alt.id,
                    confidence=alt.confidence,
                    reason=f"Alternative framework detection with {alt.confidence * 100:.0f}% confidence",
                ))

        if result.app_type:
            for alt in result.app_type.alternatives[:MAX_ALTERNATIVES_PER_FIELD]:
                alternatives.append(AlternativeSuggestion(
                    type="app_type",
                    suggestion=alt.id,
                    confidence=alt.confidence,
                    reason=f"Alternative app type with {alt.confidence * 100:.0f}% confidence",
                ))

        if (
            result.app_type
            and result.app_type.id == AppType.SPA.value
            and result.infrastructure
            and result.infrastructure.needs("database")
        ):
            alternatives.append(AlternativeSuggestion(
                type="infrastructure",
                suggestion="Consider if database is really needed for SPA",
                confidence=0.7,
                reason="SPAs typically use external APIs for data",
            ))

        alternatives.sort(key=lambda a: a.confidence, reverse=True)
        return alternatives

    def stats(self) -> dict[str, Any]:
        return {
            "cache": self.cache.stats(),
            "options": self.config.processor.model_dump(),
        }

    # -------------------------------------------------------------------------
    # Pipeline steps
    # -------------------------------------------------------------------------

    def _parse(self, raw: RawResult) -> Optional[ClassificationResult]:
        if isinstance(raw, ClassificationResult):
            return raw
        try:
            return ClassificationResult.model_validate(raw)
        except ValidationError:
            return None

    def _lookup(self, analysis_input: Optional[RawInput]) -> Optional[ProcessedResult]:
        if not self.cache_enabled or analysis_input is None:
            return None

        cached = self.cache.get(analysis_input)
        if cached is None:
            return None

        logger.debug("Cache hit for analysis input")
        report = self.validator.validate(cached)
        report.suggestions.extend(self.fallback.suggestions_for(cached))
        return ProcessedResult(result=cached, report=report, from_cache=True)

    def _finalize(
        self,
        result: ClassificationResult,
        analysis_input: Optional[RawInput],
        source_warnings: Optional[list[str]] = None,
    ) -> ProcessedResult:
        report = self.validator.validate(result)

        if self.fallbacks_enabled and self._needs_fallback(report):
            resolved = self.fallback.resolve(result, report)
            if resolved.timestamp is None:
                resolved = resolved.model_copy(update={"timestamp": datetime.utcnow()})

            logger.info(
                "Applied fallbacks %s (confidence %s -> %.2f)",
                resolved.fallbacks_applied,
                "n/a" if result.confidence is None else f"{result.confidence:.2f}",
                resolved.confidence,
            )
            result = resolved
            report = self.validator.validate(result)
            report.suggestions.extend(self.fallback.suggestions_for(result))

        if source_warnings:
            report.warnings[:0] = source_warnings

        if self.cache_enabled and analysis_input is not None and report.is_valid:
            self.cache.set(analysis_input, result)

        return ProcessedResult(result=result, report=report)

    def _needs_fallback(self, report: ValidationReport) -> bool:
        return report.confidence_level == ConfidenceLevel.LOW or not report.is_valid

    def _error_result(
        self, result: Optional[ClassificationResult], error: Exception
    ) -> ProcessedResult:
        return ProcessedResult(
            result=result,
            report=ValidationReport(
                is_valid=False,
                confidence_level=ConfidenceLevel.ERROR,
                issues=[f"Processing error: {error}"],
            ),
            processing_error=str(error),
        )
