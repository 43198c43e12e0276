"""Shared builders for classification results."""

from datetime import datetime
from typing import Optional

import pytest

from analysis_consensus.config import reset_config
from analysis_consensus.schema import (
    AppTypeResult,
    Candidate,
    ClassificationResult,
    FrameworkResult,
    InfrastructureResult,
    RequirementSignal,
    TrafficLevel,
)

FIXED_TIMESTAMP = datetime(2025, 1, 15, 10, 0, 0)


def build_result(
    framework: str = "react",
    framework_confidence: float = 0.8,
    app_type: str = "spa",
    app_type_confidence: float = 0.8,
    requirements: Optional[dict[str, tuple[bool, float]]] = None,
    complexity: int = 1,
    infrastructure_confidence: float = 0.7,
    traffic: Optional[TrafficLevel] = None,
    framework_alternatives: Optional[list[tuple[str, float]]] = None,
    app_type_alternatives: Optional[list[tuple[str, float]]] = None,
    timestamp: Optional[datetime] = None,
) -> ClassificationResult:
    """Build a single-source result; requirements map name -> (required, confidence)."""
    return ClassificationResult.build(
        FrameworkResult(
            id=framework,
            confidence=framework_confidence,
            alternatives=[Candidate(id=i, confidence=c) for i, c in framework_alternatives or []],
        ),
        AppTypeResult(
            id=app_type,
            confidence=app_type_confidence,
            alternatives=[Candidate(id=i, confidence=c) for i, c in app_type_alternatives or []],
        ),
        InfrastructureResult(
            requirements={
                name: RequirementSignal(required=required, confidence=confidence)
                for name, (required, confidence) in (requirements or {}).items()
            },
            complexity=complexity,
            confidence=infrastructure_confidence,
            traffic=traffic,
        ),
        timestamp=timestamp or FIXED_TIMESTAMP,
    )


@pytest.fixture
def make_result():
    """Factory fixture for classification results."""
    return build_result


@pytest.fixture(autouse=True)
def _default_config(monkeypatch):
    """Keep every test on default configuration."""
    monkeypatch.delenv("ANALYSIS_CONSENSUS_CONFIG", raising=False)
    reset_config()
    yield
    reset_config()
