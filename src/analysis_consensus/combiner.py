"""Combiner - merges independent classification results into a consensus.

Framework and app type are decided by a support-score vote, infrastructure
requirements are merged conservatively (OR on required, max on confidence).
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from .schema import (
    AppType,
    AppTypeResult,
    Candidate,
    ClassificationResult,
    FrameworkResult,
    InfrastructureResult,
    RequirementSignal,
    TrafficLevel,
    blend_confidence,
    is_placeholder,
)
from .validator import MAX_COMPLEXITY, MIN_COMPLEXITY


@dataclass(frozen=True)
class SupportWeights:
    """Weights of the support score: frequency share vs. average confidence."""
    frequency: float
    confidence: float


FRAMEWORK_SUPPORT = SupportWeights(frequency=0.5, confidence=0.5)
APP_TYPE_SUPPORT = SupportWeights(frequency=0.6, confidence=0.4)


@dataclass
class _Tally:
    count: int = 0
    total_confidence: float = 0.0
    support: float = 0.0


@dataclass
class _Vote:
    winner: Optional[str]
    support: float
    alternatives: list[Candidate] = field(default_factory=list)


def clamp_complexity(value: float) -> int:
    """Round half-up and clamp into the 1-5 complexity range."""
    return min(max(int(math.floor(value + 0.5)), MIN_COMPLEXITY), MAX_COMPLEXITY)


class ResultCombiner:
    """Combines multiple classification results into one."""

    def combine(self, results: Sequence[ClassificationResult]) -> ClassificationResult:
        """Merge results into a consensus result.

        Args:
            results: Non-empty list of results (e.g. file-based and
                description-based analyses).

        Returns:
            The input itself for a single result, otherwise a new merged result.

        Raises:
            ValueError: If no results are given.
        """
        if not results:
            raise ValueError("Results must be a non-empty list")

        if len(results) == 1:
            return results[0]

        framework = self._combine_frameworks(results)
        app_type = self._combine_app_types(results)
        infrastructure = self._combine_infrastructure(results)

        return ClassificationResult(
            framework=framework,
            app_type=app_type,
            infrastructure=infrastructure,
            confidence=blend_confidence(
                framework.confidence, app_type.confidence, infrastructure.confidence
            ),
            timestamp=self._latest_timestamp(results),
            sources=sum(max(r.sources, 1) for r in results),
        )

    def _vote(
        self,
        values: list[tuple[Optional[str], float]],
        weights: SupportWeights,
    ) -> _Vote:
        """Tally candidates and pick the one with the highest support score.

        ``values`` holds (id, confidence) per input; placeholder ids are
        skipped but still count towards the total. Ties keep the first-seen
        candidate.
        """
        total = len(values)
        tallies: dict[str, _Tally] = {}

        for value, confidence in values:
            if is_placeholder(value):
                continue
            tally = tallies.setdefault(value, _Tally())
            tally.count += 1
            tally.total_confidence += confidence or 0.0

        winner = None
        best = _Tally()
        for candidate, tally in tallies.items():
            average_confidence = tally.total_confidence / tally.count
            tally.support = (
                weights.frequency * (tally.count / total)
                + weights.confidence * average_confidence
            )
            if winner is None or tally.support > best.support:
                winner, best = candidate, tally

        alternatives = [
            Candidate(id=candidate, confidence=tally.support)
            for candidate, tally in tallies.items()
            if candidate != winner
        ]
        alternatives.sort(key=lambda c: c.confidence, reverse=True)

        return _Vote(winner=winner, support=best.support, alternatives=alternatives)

    def _combine_frameworks(self, results: Sequence[ClassificationResult]) -> FrameworkResult:
        vote = self._vote(
            [
                (r.framework.id, r.framework.confidence) if r.framework else (None, 0.0)
                for r in results
            ],
            FRAMEWORK_SUPPORT,
        )
        if vote.winner is None:
            return FrameworkResult(id="unknown", confidence=0.0)

        name = next(
            (r.framework.name for r in results if r.framework and r.framework.id == vote.winner),
            None,
        )
        return FrameworkResult(
            id=vote.winner,
            name=name,
            confidence=vote.support,
            alternatives=vote.alternatives,
        )

    def _combine_app_types(self, results: Sequence[ClassificationResult]) -> AppTypeResult:
        vote = self._vote(
            [
                (r.app_type.id, r.app_type.confidence) if r.app_type else (None, 0.0)
                for r in results
            ],
            APP_TYPE_SUPPORT,
        )
        if vote.winner is None:
            return AppTypeResult(id=AppType.UNKNOWN.value, confidence=0.0)

        name = next(
            (r.app_type.name for r in results if r.app_type and r.app_type.id == vote.winner),
            None,
        )
        return AppTypeResult(
            id=vote.winner,
            name=name,
            confidence=vote.support,
            alternatives=vote.alternatives,
        )

    def _combine_infrastructure(
        self, results: Sequence[ClassificationResult]
    ) -> InfrastructureResult:
        requirements: dict[str, RequirementSignal] = {}
        complexities: list[int] = []
        confidences: list[float] = []
        traffic: Optional[TrafficLevel] = None

        for result in results:
            infra = result.infrastructure
            if infra is None:
                continue

            for name, signal in infra.requirements.items():
                merged = requirements.setdefault(
                    name, RequirementSignal(required=False, confidence=0.0, sources=0)
                )
                merged.sources += 1
                # Max, never an average
                merged.confidence = max(merged.confidence, signal.confidence)
                merged.required = merged.required or signal.required

            complexities.append(infra.complexity)
            confidences.append(infra.confidence)

            if infra.traffic is not None and (traffic is None or infra.traffic.rank > traffic.rank):
                traffic = infra.traffic

        complexity = (
            clamp_complexity(sum(complexities) / len(complexities))
            if complexities
            else MIN_COMPLEXITY
        )
        confidence = sum(confidences) / len(confidences) if confidences else 0.0

        return InfrastructureResult(
            requirements=requirements,
            complexity=complexity,
            confidence=confidence,
            traffic=traffic,
        )

    def _latest_timestamp(self, results: Sequence[ClassificationResult]) -> datetime:
        timestamps = [r.timestamp for r in results if r.timestamp is not None]
        return max(timestamps) if timestamps else datetime.utcnow()
