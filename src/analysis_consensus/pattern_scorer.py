"""Pattern Scorer - ranks architecture patterns against a classification.

Scores every catalog pattern on three weighted criteria (app type,
framework, infrastructure requirements), drops weak matches and ranks the
rest by a blend of match score and user-preference suitability.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from .config import PatternWeightsConfig
from .schema import (
    ArchitecturePattern,
    ArchitecturePatternMatch,
    ClassificationResult,
    PatternCatalog,
    PatternScore,
    ScoringDimension,
    TrafficLevel,
    UserPreferences,
    is_placeholder,
)


@dataclass(frozen=True)
class ScoringWeights:
    """Weights for scoring criteria."""
    app_type: float = 0.35
    framework: float = 0.25
    requirements: float = 0.40
    score_floor: float = 0.2  # Matches below are dropped
    match_weight: float = 0.7
    suitability_weight: float = 0.3

    @classmethod
    def from_config(cls, config: PatternWeightsConfig) -> "ScoringWeights":
        return cls(**config.model_dump())


def _frozen(table: dict[str, set[str]]) -> Mapping[str, frozenset[str]]:
    return MappingProxyType({key: frozenset(values) for key, values in table.items()})


@dataclass(frozen=True)
class CompatibilityTables:
    """Families a detected value is compatible with when not matched exactly."""
    app_types: Mapping[str, frozenset[str]] = field(default_factory=lambda: _frozen({
        "spa": {"static", "frontend"},
        "api": {"backend", "microservices"},
        "fullstack": {"monolith", "traditional"},
        "static": {"spa", "frontend"},
    }))
    frameworks: Mapping[str, frozenset[str]] = field(default_factory=lambda: _frozen({
        "react": {"javascript", "frontend"},
        "vue": {"javascript", "frontend"},
        "angular": {"javascript", "frontend"},
        "nodejs": {"javascript", "backend"},
        "python": {"backend"},
        "php": {"backend"},
        "java": {"backend"},
    }))


@dataclass
class _CheckResult:
    score: float
    reason: Optional[str] = None
    warning: Optional[str] = None


class PatternScorer:
    """Scores architecture patterns against a classification result.

    Scoring principles:
    - Unknown detections score neutral (0.5) rather than zero
    - Requirement conflicts are warned about, never hidden
    - Deterministic: no state is kept between calls
    """

    # Requirement checklist and the share of the requirements score each takes
    REQUIREMENT_WEIGHTS = MappingProxyType({
        "database": 0.30,
        "auth": 0.20,
        "realtime": 0.20,
        "storage": 0.15,
        "traffic": 0.15,
    })

    def __init__(
        self,
        catalog: PatternCatalog,
        weights: Optional[ScoringWeights] = None,
        compatibility: Optional[CompatibilityTables] = None,
    ):
        """Initialize scorer with a catalog and optional custom weights."""
        self.catalog = catalog
        self.weights = weights or ScoringWeights()
        self.compatibility = compatibility or CompatibilityTables()

    def match_patterns(
        self,
        classification: ClassificationResult,
        preferences: Optional[UserPreferences] = None,
    ) -> list[ArchitecturePatternMatch]:
        """Score every catalog pattern and return the ranked matches.

        Args:
            classification: Consensus classification result
            preferences: User priorities; neutral when omitted

        Returns:
            Matches above the score floor, highest ranking score first
        """
        preferences = preferences or UserPreferences()
        overall_confidence = classification.confidence or 0.0
        matches = []

        for pattern in self.catalog.patterns:
            result = self.score(pattern, classification)
            if result.score < self.weights.score_floor:
                continue

            suitability = self.suitability(pattern, preferences)
            matches.append(ArchitecturePatternMatch(
                pattern_id=pattern.pattern_id,
                pattern_name=pattern.name,
                score=result.score,
                confidence=min(max(result.score * overall_confidence, 0.0), 1.0),
                suitability=suitability,
                ranking_score=(
                    self.weights.match_weight * result.score
                    + self.weights.suitability_weight * suitability
                ),
                reasons=result.reasons,
                warnings=result.warnings,
                dimensions=result.dimensions,
            ))

        # Stable: equal ranking scores keep catalog order
        matches.sort(key=lambda m: m.ranking_score, reverse=True)
        return matches

    def score(
        self, pattern: ArchitecturePattern, classification: ClassificationResult
    ) -> PatternScore:
        """Score a single pattern."""
        reasons: list[str] = []
        warnings: list[str] = []

        dimensions = [
            self._score_app_type(pattern, classification, reasons, warnings),
            self._score_framework(pattern, classification, reasons),
            self._score_requirements(pattern, classification, reasons, warnings),
        ]

        total_weighted = sum(d.weighted_score for d in dimensions)
        total_weights = sum(d.weight for d in dimensions)
        score = total_weighted / total_weights if total_weights > 0 else 0.0

        return PatternScore(
            score=min(max(score, 0.0), 1.0),
            reasons=reasons,
            warnings=warnings,
            dimensions=dimensions,
        )

    def _dimension(self, name: str, weight: float, raw: float, reasoning: str) -> ScoringDimension:
        return ScoringDimension(
            dimension=name,
            weight=weight,
            raw_score=raw,
            weighted_score=raw * weight,
            reasoning=reasoning,
        )

    def _score_app_type(
        self,
        pattern: ArchitecturePattern,
        classification: ClassificationResult,
        reasons: list[str],
        warnings: list[str],
    ) -> ScoringDimension:
        weight = self.weights.app_type
        app_type = classification.app_type.id if classification.app_type else None

        if is_placeholder(app_type):
            warnings.append("Application type not clearly detected")
            return self._dimension("app_type", weight, 0.5, "No app type detected; neutral score")

        supported = pattern.match_criteria.app_types
        compatible = self.compatibility.app_types.get(app_type, frozenset())

        if app_type in supported:
            reasons.append(f"Perfect match for {app_type} applications")
            return self._dimension("app_type", weight, 1.0, f"{app_type} in {list(supported)}")

        if compatible.intersection(supported):
            reasons.append(f"Compatible with {app_type} applications")
            return self._dimension("app_type", weight, 0.7, f"{app_type} compatible with {list(supported)}")

        warnings.append(f"Not primarily designed for {app_type} applications")
        return self._dimension("app_type", weight, 0.2, f"{app_type} not in {list(supported)}")

    def _score_framework(
        self,
        pattern: ArchitecturePattern,
        classification: ClassificationResult,
        reasons: list[str],
    ) -> ScoringDimension:
        weight = self.weights.framework
        framework = classification.framework.id if classification.framework else None

        if is_placeholder(framework):
            return self._dimension("framework", weight, 0.5, "No framework detected; neutral score")

        supported = pattern.match_criteria.frameworks
        compatible = self.compatibility.frameworks.get(framework, frozenset())

        if "any" in supported or framework in supported:
            reasons.append(f"Supports {framework} framework")
            return self._dimension("framework", weight, 1.0, f"{framework} supported")

        if compatible.intersection(supported):
            reasons.append(f"Can accommodate {framework} with modifications")
            return self._dimension("framework", weight, 0.6, f"{framework} compatible with {list(supported)}")

        reasons.append(f"Limited support for {framework}")
        return self._dimension("framework", weight, 0.3, f"{framework} not in {list(supported)}")

    def _score_requirements(
        self,
        pattern: ArchitecturePattern,
        classification: ClassificationResult,
        reasons: list[str],
        warnings: list[str],
    ) -> ScoringDimension:
        infrastructure = classification.infrastructure
        declared = pattern.match_criteria.requirements

        def needs(name: str) -> bool:
            return infrastructure is not None and infrastructure.needs(name)

        checks = {
            "database": self._check_database(declared.get("database"), needs("database")),
            "auth": self._check_auth(declared.get("auth"), needs("auth")),
            "realtime": self._check_realtime(declared.get("realtime"), needs("realtime")),
            "storage": self._check_storage(needs("storage")),
            "traffic": self._check_traffic(
                pattern, infrastructure.traffic if infrastructure else None
            ),
        }

        total_score = 0.0
        total_weight = 0.0
        for name, weight in self.REQUIREMENT_WEIGHTS.items():
            check = checks[name]
            total_score += check.score * weight
            total_weight += weight
            if check.reason:
                reasons.append(check.reason)
            if check.warning:
                warnings.append(check.warning)

        raw = total_score / total_weight if total_weight > 0 else 0.5
        breakdown = ", ".join(f"{name}={checks[name].score:.2f}" for name in self.REQUIREMENT_WEIGHTS)
        return self._dimension("requirements", self.weights.requirements, raw, breakdown)

    # -------------------------------------------------------------------------
    # Requirement decision tables
    # -------------------------------------------------------------------------

    def _check_database(self, declared: Optional[bool], needed: bool) -> _CheckResult:
        if declared is None:
            return _CheckResult(0.5)
        if needed and declared:
            return _CheckResult(1.0, reason="Includes database services")
        if not needed and not declared:
            return _CheckResult(1.0, reason="No database needed - perfect for static content")
        if needed:
            return _CheckResult(0.1, warning="Database needed but pattern is database-free")
        return _CheckResult(0.7, reason="Database available if needed later")

    def _check_auth(self, declared: Optional[bool], needed: bool) -> _CheckResult:
        if not needed:
            return _CheckResult(1.0)
        if declared is False:
            return _CheckResult(
                0.3, warning="Authentication needed but not well-supported by this pattern"
            )
        return _CheckResult(0.9, reason="Can integrate authentication services")

    def _check_realtime(self, declared: Optional[bool], needed: bool) -> _CheckResult:
        if not needed:
            return _CheckResult(1.0)
        if declared is False:
            return _CheckResult(
                0.2, warning="Real-time features needed but not supported by this pattern"
            )
        return _CheckResult(0.8, reason="Supports real-time features")

    def _check_storage(self, needed: bool) -> _CheckResult:
        if not needed:
            return _CheckResult(1.0)
        return _CheckResult(0.9, reason="Can integrate file storage services")

    def _check_traffic(
        self, pattern: ArchitecturePattern, traffic: Optional[TrafficLevel]
    ) -> _CheckResult:
        scalability = pattern.characteristics.scalability

        if traffic == TrafficLevel.LOW:
            return _CheckResult(1.0, reason="Suitable for low traffic")
        if traffic == TrafficLevel.MEDIUM:
            if scalability >= 3:
                return _CheckResult(1.0, reason="Handles medium traffic well")
            return _CheckResult(0.6, reason="May need optimization for medium traffic")
        if traffic == TrafficLevel.HIGH:
            if scalability >= 4:
                return _CheckResult(1.0, reason="Excellent for high traffic")
            return _CheckResult(
                0.4,
                reason="May struggle with high traffic",
                warning="Consider more scalable alternatives for high traffic",
            )
        return _CheckResult(0.8)

    # -------------------------------------------------------------------------
    # User-preference suitability
    # -------------------------------------------------------------------------

    def suitability(self, pattern: ArchitecturePattern, preferences: UserPreferences) -> float:
        """Blend cost, complexity and performance fit by the user's priorities."""
        cost_weight = preferences.cost_priority
        complexity_weight = preferences.complexity_tolerance
        performance_weight = preferences.performance_requirements
        total_weight = cost_weight + complexity_weight + performance_weight

        suitability = (
            self._cost_suitability(pattern, cost_weight) * cost_weight
            + self._complexity_suitability(pattern, complexity_weight) * complexity_weight
            + self._performance_suitability(pattern, performance_weight) * performance_weight
        ) / total_weight
        return min(suitability, 1.0)

    def _cost_suitability(self, pattern: ArchitecturePattern, priority: int) -> float:
        if priority >= 4:
            return (6 - pattern.characteristics.cost) / 5  # Cheaper is better
        if priority <= 2:
            return 0.8
        return 0.6

    def _complexity_suitability(self, pattern: ArchitecturePattern, tolerance: int) -> float:
        if tolerance <= 2:
            return (6 - pattern.characteristics.complexity) / 5  # Simpler is better
        if tolerance >= 4:
            return 0.8
        return 0.6

    def _performance_suitability(self, pattern: ArchitecturePattern, requirement: int) -> float:
        if requirement >= 4:
            characteristics = pattern.characteristics
            return (characteristics.scalability + characteristics.availability) / 10
        if requirement <= 2:
            return 0.7
        return 0.6
