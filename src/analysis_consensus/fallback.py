"""Fallback resolution for low-confidence classification results.

Sub-fields that cannot be trusted are replaced by defaults derived from the
sub-fields that can. Derivation is a single hop:

    app type  -> framework
    framework -> app type
    app type  -> infrastructure

When neither framework nor app type is trusted, the framework default is
applied first and the app type is derived from it.
"""

from typing import Optional

from .schema import (
    AppType,
    AppTypeResult,
    ClassificationResult,
    FrameworkResult,
    InfrastructureResult,
    RequirementSignal,
    ValidationReport,
    blend_confidence,
    is_placeholder,
)
from .validator import (
    BACKEND_FRAMEWORKS,
    FRONTEND_FRAMEWORKS,
    LOW_THRESHOLD,
    MAX_COMPLEXITY,
    MIN_COMPLEXITY,
    in_unit_range,
)

FALLBACK_PENALTY = 0.1
MIN_FALLBACK_CONFIDENCE = 0.1

# Framework derived from a trusted app type: (id, name, confidence, reason)
FRAMEWORK_BY_APP_TYPE = {
    AppType.SPA.value: ("react", "React", 0.4, "SPA detected, defaulting to React"),
    AppType.API.value: ("nodejs", "Node.js", 0.4, "API detected, defaulting to Node.js"),
    AppType.STATIC.value: ("none", "Static HTML/CSS/JS", 0.5, "Static site detected"),
}
DEFAULT_FRAMEWORK = ("react", "React", 0.3, "Default fallback for web applications")

APP_TYPE_NAMES = {
    AppType.SPA.value: "Single Page Application",
    AppType.API.value: "API/Backend Service",
}

# Infrastructure derived from the app type: (requirements, complexity)
INFRASTRUCTURE_BY_APP_TYPE = {
    AppType.API.value: ({"database": 0.3}, 2),
    AppType.FULLSTACK.value: ({"database": 0.4, "auth": 0.3}, 3),
}
INFRASTRUCTURE_FALLBACK_CONFIDENCE = 0.3

FALLBACK_SUGGESTIONS = {
    "framework": "Framework detection used fallback - upload more source files for better accuracy",
    "app_type": "App type detection used fallback - include routing or API files for better classification",
    "infrastructure": "Infrastructure detection used fallback - add configuration files or describe your requirements",
}
GENERAL_SUGGESTIONS = (
    "Consider providing a more detailed description of your application",
    "Upload additional configuration files (package.json, docker-compose.yml, .env)",
)


def _alternatives_in_range(alternatives) -> bool:
    return all(in_unit_range(alt.confidence) for alt in alternatives)


def is_confident_framework(framework: Optional[FrameworkResult]) -> bool:
    return (
        framework is not None
        and not is_placeholder(framework.id)
        and in_unit_range(framework.confidence)
        and _alternatives_in_range(framework.alternatives)
        and framework.confidence >= LOW_THRESHOLD
    )


def is_confident_app_type(app_type: Optional[AppTypeResult]) -> bool:
    return (
        app_type is not None
        and not is_placeholder(app_type.id)
        and in_unit_range(app_type.confidence)
        and _alternatives_in_range(app_type.alternatives)
        and app_type.confidence >= LOW_THRESHOLD
    )


def is_confident_infrastructure(infrastructure: Optional[InfrastructureResult]) -> bool:
    return (
        infrastructure is not None
        and in_unit_range(infrastructure.confidence)
        and MIN_COMPLEXITY <= infrastructure.complexity <= MAX_COMPLEXITY
        and all(in_unit_range(s.confidence) for s in infrastructure.requirements.values())
        and infrastructure.confidence >= LOW_THRESHOLD
    )


class FallbackResolver:
    """Derives a safer substitute for a low-confidence or invalid result.

    Stateless and deterministic: the same input always yields the same
    output, and the input is never mutated.
    """

    def resolve(
        self,
        result: ClassificationResult,
        report: Optional[ValidationReport] = None,
    ) -> ClassificationResult:
        """Replace untrusted sub-fields with derived defaults.

        Args:
            result: The result to repair.
            report: Validation report of ``result``. What gets replaced is
                decided from the sub-fields themselves.

        Returns:
            A new result with ``fallbacks_applied`` listing every replaced
            sub-field and ``original_confidence`` set when any was replaced.
        """
        framework = result.framework
        app_type = result.app_type
        infrastructure = result.infrastructure
        applied: list[str] = []

        if not is_confident_framework(framework):
            trusted_app_type = app_type.id if is_confident_app_type(app_type) else None
            framework = self._framework_fallback(trusted_app_type)
            applied.append("framework")

        if not is_confident_app_type(app_type):
            app_type = self._app_type_fallback(framework.id)
            applied.append("app_type")

        if not is_confident_infrastructure(infrastructure):
            infrastructure = self._infrastructure_fallback(app_type.id)
            applied.append("infrastructure")

        fallbacks_applied = list(result.fallbacks_applied)
        for name in applied:
            if name not in fallbacks_applied:
                fallbacks_applied.append(name)

        base = blend_confidence(
            framework.confidence, app_type.confidence, infrastructure.confidence
        )
        confidence = max(
            base - FALLBACK_PENALTY * len(fallbacks_applied), MIN_FALLBACK_CONFIDENCE
        )

        original_confidence = result.original_confidence
        if applied and original_confidence is None and result.confidence is not None:
            original_confidence = min(max(result.confidence, 0.0), 1.0)

        return result.model_copy(
            update={
                "framework": framework.model_copy(deep=True),
                "app_type": app_type.model_copy(deep=True),
                "infrastructure": infrastructure.model_copy(deep=True),
                "confidence": confidence,
                "fallbacks_applied": fallbacks_applied,
                "original_confidence": original_confidence,
            }
        )

    def suggestions_for(self, result: ClassificationResult) -> list[str]:
        """Advisory messages describing the fallbacks applied to a result."""
        if not result.fallbacks_applied:
            return []

        suggestions = [
            FALLBACK_SUGGESTIONS[name]
            for name in result.fallbacks_applied
            if name in FALLBACK_SUGGESTIONS
        ]
        suggestions.extend(GENERAL_SUGGESTIONS)
        return suggestions

    def _framework_fallback(self, app_type: Optional[str]) -> FrameworkResult:
        framework_id, name, confidence, reason = FRAMEWORK_BY_APP_TYPE.get(
            app_type, DEFAULT_FRAMEWORK
        )
        return FrameworkResult(
            id=framework_id,
            name=name,
            confidence=confidence,
            fallback=True,
            reason=reason,
        )

    def _app_type_fallback(self, framework: str) -> AppTypeResult:
        if framework in FRONTEND_FRAMEWORKS:
            app_type, confidence = AppType.SPA.value, 0.4
            reason = f"{framework} framework suggests SPA"
        elif framework in BACKEND_FRAMEWORKS:
            app_type, confidence = AppType.API.value, 0.4
            reason = f"{framework} framework suggests API"
        else:
            app_type, confidence = AppType.SPA.value, 0.3
            reason = "Default fallback for web applications"

        return AppTypeResult(
            id=app_type,
            name=APP_TYPE_NAMES[app_type],
            confidence=confidence,
            fallback=True,
            reason=reason,
        )

    def _infrastructure_fallback(self, app_type: str) -> InfrastructureResult:
        required, complexity = INFRASTRUCTURE_BY_APP_TYPE.get(app_type, ({}, MIN_COMPLEXITY))
        return InfrastructureResult(
            requirements={
                name: RequirementSignal(required=True, confidence=confidence, fallback=True)
                for name, confidence in required.items()
            },
            complexity=complexity,
            confidence=INFRASTRUCTURE_FALLBACK_CONFIDENCE,
            fallback=True,
            reason=f"Basic infrastructure for {app_type} application",
        )
