"""Validator - checks one classification result.

Two decoupled passes:
- Schema pass: required fields present, values parseable, numbers in range.
  Failures are hard issues and make the result invalid.
- Semantic pass: cross-field consistency heuristics. These only ever
  produce warnings and suggestions.
"""

from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import ValidationError

from .schema import (
    AppType,
    AppTypeResult,
    Candidate,
    ClassificationResult,
    ConfidenceLevel,
    FrameworkResult,
    InfrastructureResult,
    ValidationReport,
    is_placeholder,
)

# Confidence tier ladder
LOW_THRESHOLD = 0.3
GOOD_THRESHOLD = 0.6
EXCELLENT_THRESHOLD = 0.8

MIN_COMPLEXITY = 1
MAX_COMPLEXITY = 5

REQUIRED_FIELDS = ("framework", "app_type", "infrastructure", "confidence", "timestamp")

FRONTEND_FRAMEWORKS = frozenset({"react", "vue", "angular"})
BACKEND_FRAMEWORKS = frozenset({"nodejs", "python", "php"})


def confidence_tier(confidence: Optional[float]) -> ConfidenceLevel:
    """Map an overall confidence onto the fixed tier ladder."""
    if confidence is None or confidence < LOW_THRESHOLD:
        return ConfidenceLevel.LOW
    if confidence < GOOD_THRESHOLD:
        return ConfidenceLevel.FAIR
    if confidence < EXCELLENT_THRESHOLD:
        return ConfidenceLevel.GOOD
    return ConfidenceLevel.EXCELLENT


def in_unit_range(value: Any) -> bool:
    """Check that a value is a number within [0, 1]."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and 0.0 <= value <= 1.0


class ResultValidator:
    """Validates classification results.

    Stateless; a single instance can be shared freely.
    """

    def validate(
        self, result: Union[ClassificationResult, Mapping[str, Any]]
    ) -> ValidationReport:
        """Validate a result and assign its confidence tier.

        Args:
            result: A ClassificationResult or a raw mapping of one.

        Returns:
            The validation report. Never raises for malformed input.
        """
        report = ValidationReport()

        parsed = self._parse(result, report)
        if parsed is None:
            report.confidence_level = ConfidenceLevel.LOW
            return report

        self._check_structure(parsed, report)
        if parsed.framework:
            self._check_framework(parsed.framework, report)
        if parsed.app_type:
            self._check_app_type(parsed.app_type, report)
        if parsed.infrastructure:
            self._check_infrastructure(parsed.infrastructure, report)
        self._check_overall_confidence(parsed.confidence, report)

        if parsed.framework and parsed.app_type and parsed.infrastructure:
            self._check_consistency(parsed, report)
            self._generate_suggestions(parsed, report)

        report.confidence_level = confidence_tier(parsed.confidence)
        return report

    def range_issues(self, result: ClassificationResult) -> list[str]:
        """Return the out-of-range issues of a parsed result.

        Missing sub-fields are not reported here; a partial result can
        still take part in a consensus vote.
        """
        report = ValidationReport()
        if result.sources < 1:
            report.add_issue("Source count must be at least 1")
        if result.framework:
            self._check_framework(result.framework, report)
        if result.app_type:
            self._check_app_type(result.app_type, report)
        if result.infrastructure:
            self._check_infrastructure(result.infrastructure, report)
        self._check_overall_confidence(result.confidence, report)
        return report.issues

    # -------------------------------------------------------------------------
    # Schema pass
    # -------------------------------------------------------------------------

    def _parse(
        self,
        result: Union[ClassificationResult, Mapping[str, Any]],
        report: ValidationReport,
    ) -> Optional[ClassificationResult]:
        """Coerce raw input into the schema, recording parse failures as issues."""
        if isinstance(result, ClassificationResult):
            return result

        if not isinstance(result, Mapping):
            report.add_issue(
                f"Classification result must be an object, got {type(result).__name__}"
            )
            return None

        try:
            return ClassificationResult.model_validate(dict(result))
        except ValidationError as e:
            for error in e.errors():
                location = ".".join(str(part) for part in error["loc"])
                report.add_issue(f"Invalid value for {location}: {error['msg']}")
            return None

    def _check_structure(self, result: ClassificationResult, report: ValidationReport) -> None:
        """Check that every top-level field is present."""
        for field in REQUIRED_FIELDS:
            if getattr(result, field) is None:
                report.add_issue(f"Missing required field: {field}")

        if result.sources < 1:
            report.add_issue("Source count must be at least 1")

    def _check_alternatives(
        self,
        label: str,
        chosen: str,
        alternatives: list[Candidate],
        report: ValidationReport,
    ) -> None:
        for alt in alternatives:
            if not in_unit_range(alt.confidence):
                report.add_issue(f"{label} alternative '{alt.id}' confidence must be between 0 and 1")

        if any(alt.id == chosen for alt in alternatives):
            report.warnings.append(f"{label} alternatives include the chosen value '{chosen}'")

        confidences = [alt.confidence for alt in alternatives]
        if confidences != sorted(confidences, reverse=True):
            report.warnings.append(f"{label} alternatives are not sorted by confidence")

    def _check_framework(self, framework: FrameworkResult, report: ValidationReport) -> None:
        if not in_unit_range(framework.confidence):
            report.add_issue("Framework confidence must be between 0 and 1")

        if framework.id == "unknown" and framework.confidence > 0.5:
            report.warnings.append(
                "Unknown framework detected with high confidence - may indicate detection error"
            )

        self._check_alternatives("Framework", framework.id, framework.alternatives, report)

    def _check_app_type(self, app_type: AppTypeResult, report: ValidationReport) -> None:
        if not in_unit_range(app_type.confidence):
            report.add_issue("App type confidence must be between 0 and 1")

        if app_type.id not in AppType.values():
            report.warnings.append(f"Unexpected app type: {app_type.id}")

        self._check_alternatives("App type", app_type.id, app_type.alternatives, report)

    def _check_infrastructure(
        self, infrastructure: InfrastructureResult, report: ValidationReport
    ) -> None:
        if not in_unit_range(infrastructure.confidence):
            report.add_issue("Infrastructure confidence must be between 0 and 1")

        if not MIN_COMPLEXITY <= infrastructure.complexity <= MAX_COMPLEXITY:
            report.add_issue(
                f"Infrastructure complexity must be between {MIN_COMPLEXITY} and {MAX_COMPLEXITY}"
            )

        for name, signal in infrastructure.requirements.items():
            if not in_unit_range(signal.confidence):
                report.add_issue(f"Requirement '{name}' confidence must be between 0 and 1")

    def _check_overall_confidence(
        self, confidence: Optional[float], report: ValidationReport
    ) -> None:
        if confidence is None:
            return  # Reported by the structure check

        if not in_unit_range(confidence):
            report.add_issue("Overall confidence must be between 0 and 1")
        elif confidence < LOW_THRESHOLD:
            report.warnings.append("Overall confidence is very low - results may be unreliable")

    # -------------------------------------------------------------------------
    # Semantic pass (advisory only)
    # -------------------------------------------------------------------------

    def _check_consistency(self, result: ClassificationResult, report: ValidationReport) -> None:
        """Flag combinations that are unusual but legitimate."""
        framework = result.framework.id
        app_type = result.app_type.id
        infrastructure = result.infrastructure

        if framework in FRONTEND_FRAMEWORKS and app_type == AppType.API.value:
            report.warnings.append(
                f"Frontend framework {framework} detected but app type is API - may indicate full-stack app"
            )

        if framework in BACKEND_FRAMEWORKS and app_type == AppType.SPA.value:
            report.warnings.append(
                f"Backend framework {framework} detected but app type is SPA - may indicate SSR or full-stack"
            )

        if app_type == AppType.STATIC.value and infrastructure.needs("database"):
            report.warnings.append(
                "Static site detected but database requirements found - may be incorrect"
            )

        if app_type == AppType.API.value and not infrastructure.needs("database"):
            report.suggestions.append(
                "API detected without database - consider if data persistence is needed"
            )

        confidences = [
            result.framework.confidence,
            result.app_type.confidence,
            infrastructure.confidence,
        ]
        if max(confidences) - min(confidences) > 0.5:
            report.warnings.append(
                "Large confidence difference between detection components - results may be inconsistent"
            )

    def _generate_suggestions(self, result: ClassificationResult, report: ValidationReport) -> None:
        """Suggest inputs that would raise confidence."""
        if result.framework.confidence < GOOD_THRESHOLD:
            report.suggestions.append(
                "Consider uploading more source files to improve framework detection"
            )

        if result.app_type.confidence < GOOD_THRESHOLD:
            report.suggestions.append(
                "Include routing or API files to better determine application type"
            )

        if result.infrastructure.confidence < GOOD_THRESHOLD:
            report.suggestions.append(
                "Add configuration files (docker-compose.yml, .env) to improve infrastructure detection"
            )

        if is_placeholder(result.framework.id):
            report.suggestions.append(
                "Upload package.json or main application files for better framework detection"
            )

        if not result.infrastructure.requirements:
            report.suggestions.append(
                "Consider adding database, authentication, or storage requirements to your description"
            )
