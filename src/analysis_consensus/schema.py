"""Pydantic models for the Analysis Consensus Engine.

Classification records exchanged between the pipeline stages, the
validation report attached to them, cache input records and the
architecture pattern catalog consumed by the pattern scorer.

Field names are snake_case; the camelCase names used by browser payloads
(``appType``, ``fallbacksApplied``, ``originalConfidence``) are accepted
as aliases.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================


class AppType(str, Enum):
    """Application archetypes the classifier distinguishes."""
    SPA = "spa"
    SSR = "ssr"
    API = "api"
    FULLSTACK = "fullstack"
    STATIC = "static"
    UNKNOWN = "unknown"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class ConfidenceLevel(str, Enum):
    """Confidence tier assigned by the validator."""
    LOW = "low"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"
    ERROR = "error"  # Processing failed; data passed through unchanged


class TrafficLevel(str, Enum):
    """Expected traffic for the application."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return {"low": 0, "medium": 1, "high": 2}[self.value]


# Values that stand for "nothing detected" and never take part in a vote
PLACEHOLDER_IDS = frozenset({"unknown", ""})


def is_placeholder(value: Optional[str]) -> bool:
    """Check whether a detected id is a placeholder rather than a detection."""
    return value is None or value.strip().lower() in PLACEHOLDER_IDS


# =============================================================================
# Classification Models
# =============================================================================


class Candidate(BaseModel):
    """An alternative value with its confidence."""
    id: str
    confidence: float


class FrameworkResult(BaseModel):
    """Detected framework."""
    id: str = "unknown"
    name: Optional[str] = None
    confidence: float = 0.0
    alternatives: list[Candidate] = Field(default_factory=list)
    fallback: bool = False
    reason: Optional[str] = None


class AppTypeResult(BaseModel):
    """Detected application type.

    Unexpected ids are kept as-is so the validator can flag them.
    """
    id: str = AppType.UNKNOWN.value
    name: Optional[str] = None
    confidence: float = 0.0
    alternatives: list[Candidate] = Field(default_factory=list)
    fallback: bool = False
    reason: Optional[str] = None


class RequirementSignal(BaseModel):
    """A single infrastructure requirement (database, auth, ...)."""
    required: bool = False
    confidence: float = 0.0
    fallback: bool = False
    sources: int = 1


class InfrastructureResult(BaseModel):
    """Detected infrastructure requirements."""
    requirements: dict[str, RequirementSignal] = Field(default_factory=dict)
    complexity: int = 1
    confidence: float = 0.0
    traffic: Optional[TrafficLevel] = None
    fallback: bool = False
    reason: Optional[str] = None

    def needs(self, requirement: str) -> bool:
        """Check whether a requirement is flagged as required."""
        signal = self.requirements.get(requirement)
        return bool(signal and signal.required)


# Blend weights for the overall confidence: framework, app type, infrastructure
CONFIDENCE_BLEND_WEIGHTS = (0.4, 0.3, 0.3)


def blend_confidence(
    framework: Optional[float],
    app_type: Optional[float],
    infrastructure: Optional[float],
) -> float:
    """Blend sub-field confidences into an overall confidence.

    Only non-zero terms contribute; their weights are re-normalized.
    Returns 0.0 when every term is zero or missing.
    """
    weighted_sum = 0.0
    total_weight = 0.0
    for confidence, weight in zip((framework, app_type, infrastructure), CONFIDENCE_BLEND_WEIGHTS):
        if confidence:
            weighted_sum += confidence * weight
            total_weight += weight
    return weighted_sum / total_weight if total_weight > 0 else 0.0


class ClassificationResult(BaseModel):
    """The framework/appType/infrastructure judgment for one project.

    Sub-fields are optional so partial output from a detector can be
    represented; a missing sub-field is a structural issue reported by the
    validator, not a parse error.
    """
    model_config = ConfigDict(populate_by_name=True)

    framework: Optional[FrameworkResult] = None
    app_type: Optional[AppTypeResult] = Field(default=None, alias="appType")
    infrastructure: Optional[InfrastructureResult] = None
    confidence: Optional[float] = None
    timestamp: Optional[datetime] = None
    sources: int = 1
    fallbacks_applied: list[str] = Field(default_factory=list, alias="fallbacksApplied")
    original_confidence: Optional[float] = Field(default=None, alias="originalConfidence")

    @classmethod
    def build(
        cls,
        framework: FrameworkResult,
        app_type: AppTypeResult,
        infrastructure: InfrastructureResult,
        timestamp: Optional[datetime] = None,
    ) -> "ClassificationResult":
        """Create a single-source result with its overall confidence derived."""
        return cls(
            framework=framework,
            app_type=app_type,
            infrastructure=infrastructure,
            confidence=blend_confidence(
                framework.confidence, app_type.confidence, infrastructure.confidence
            ),
            timestamp=timestamp or datetime.utcnow(),
        )

    def blended_confidence(self) -> float:
        """Recompute the overall confidence from the present sub-fields."""
        return blend_confidence(
            self.framework.confidence if self.framework else None,
            self.app_type.confidence if self.app_type else None,
            self.infrastructure.confidence if self.infrastructure else None,
        )


# =============================================================================
# Validation Models
# =============================================================================


class ValidationReport(BaseModel):
    """Diagnostics for one classification result.

    Issues are hard failures, warnings are soft inconsistencies and
    suggestions are advisory.
    """
    is_valid: bool = True
    confidence_level: ConfidenceLevel = ConfidenceLevel.LOW
    issues: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    def add_issue(self, message: str) -> None:
        self.issues.append(message)
        self.is_valid = False


# =============================================================================
# Input and Processing Models
# =============================================================================


class SourceFile(BaseModel):
    """An uploaded file as seen by the cache key derivation."""
    name: str
    content: str = ""


class AnalysisInput(BaseModel):
    """Raw analysis input: free-text description and uploaded files."""
    description: str = ""
    files: list[SourceFile] = Field(default_factory=list)


class ProcessedResult(BaseModel):
    """Output of one processing call."""
    result: Optional[ClassificationResult] = None
    report: ValidationReport
    from_cache: bool = False
    processing_error: Optional[str] = None
    processed_at: datetime = Field(default_factory=datetime.utcnow)


class AlternativeSuggestion(BaseModel):
    """An alternative interpretation offered to the user."""
    type: str  # framework, app_type or infrastructure
    suggestion: str
    confidence: float
    reason: str


# =============================================================================
# Architecture Pattern Catalog Models
# =============================================================================


class PatternCriteria(BaseModel):
    """What a pattern is designed for.

    ``requirements`` maps a requirement name to True (pattern includes it),
    False (pattern excludes it); a missing key means the pattern is silent.
    """
    model_config = ConfigDict(frozen=True)

    app_types: tuple[str, ...] = ()
    frameworks: tuple[str, ...] = ()
    requirements: dict[str, bool] = Field(default_factory=dict)


class PatternCharacteristics(BaseModel):
    """1-5 ratings for a pattern."""
    model_config = ConfigDict(frozen=True)

    cost: int = Field(3, ge=1, le=5)
    complexity: int = Field(3, ge=1, le=5)
    scalability: int = Field(3, ge=1, le=5)
    availability: int = Field(3, ge=1, le=5)


class ArchitecturePattern(BaseModel):
    """A catalogued deployment architecture."""
    model_config = ConfigDict(frozen=True)

    pattern_id: str
    name: str
    description: str = ""
    services: tuple[str, ...] = ()
    match_criteria: PatternCriteria = Field(default_factory=PatternCriteria)
    characteristics: PatternCharacteristics = Field(default_factory=PatternCharacteristics)
    pros: tuple[str, ...] = ()
    cons: tuple[str, ...] = ()


class PatternCatalog(BaseModel):
    """A versioned set of architecture patterns."""
    model_config = ConfigDict(frozen=True)

    version: str = "1.0.0"
    patterns: tuple[ArchitecturePattern, ...] = ()

    def get(self, pattern_id: str) -> Optional[ArchitecturePattern]:
        for pattern in self.patterns:
            if pattern.pattern_id == pattern_id:
                return pattern
        return None


# =============================================================================
# Scoring and Output Models
# =============================================================================


class UserPreferences(BaseModel):
    """User priorities on a 1-5 scale (3 is neutral)."""
    cost_priority: int = Field(3, ge=1, le=5)
    complexity_tolerance: int = Field(3, ge=1, le=5)
    performance_requirements: int = Field(3, ge=1, le=5)


class ScoringDimension(BaseModel):
    """A single scoring criterion."""
    dimension: str
    weight: float
    raw_score: float  # 0-1 before weighting
    weighted_score: float
    reasoning: str


class PatternScore(BaseModel):
    """Fit of one pattern against one classification."""
    score: float = Field(..., ge=0, le=1)
    reasons: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    dimensions: list[ScoringDimension] = Field(default_factory=list)


class ArchitecturePatternMatch(BaseModel):
    """A ranked pattern with its explanation."""
    pattern_id: str
    pattern_name: str
    score: float = Field(..., ge=0, le=1)
    confidence: float = Field(..., ge=0, le=1)
    suitability: float = Field(..., ge=0, le=1)
    ranking_score: float
    reasons: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    dimensions: list[ScoringDimension] = Field(default_factory=list)
