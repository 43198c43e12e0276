"""Tests for the processing pipeline."""

from datetime import datetime

import pytest

from analysis_consensus.config import CacheConfig, ConsensusConfig, ProcessorConfig
from analysis_consensus.processor import AnalysisProcessor
from analysis_consensus.schema import ClassificationResult, ConfidenceLevel


def _processor(**processor_options) -> AnalysisProcessor:
    return AnalysisProcessor(ConsensusConfig(processor=ProcessorConfig(**processor_options)))


def _low_confidence_api(**overrides) -> dict:
    data = {
        "framework": {"id": "unknown", "confidence": 0.1},
        "appType": {"id": "api", "confidence": 0.6},
        "infrastructure": {},
        "confidence": 0.2,
        "timestamp": "2025-01-15T10:00:00",
    }
    data.update(overrides)
    return data


ANALYSIS_INPUT = {
    "description": "A todo list with user accounts",
    "files": [{"name": "package.json", "content": '{"dependencies": {"react": "18"}}'}],
}


def _assert_in_range(result: ClassificationResult) -> None:
    values = [
        result.confidence,
        result.framework.confidence,
        result.app_type.confidence,
        result.infrastructure.confidence,
    ]
    values += [alt.confidence for alt in result.framework.alternatives]
    values += [alt.confidence for alt in result.app_type.alternatives]
    values += [s.confidence for s in result.infrastructure.requirements.values()]
    assert all(0.0 <= v <= 1.0 for v in values)
    assert 1 <= result.infrastructure.complexity <= 5


class TestProcessSingle:
    """Tests for process()."""

    def test_confident_result_passes_through(self, make_result):
        result = make_result(requirements={"database": (True, 0.8)})
        processed = _processor().process(result)

        assert processed.result == result
        assert processed.report.is_valid
        assert processed.report.confidence_level == ConfidenceLevel.GOOD
        assert processed.from_cache is False
        assert processed.processing_error is None

    def test_low_confidence_applies_fallbacks(self):
        processed = _processor().process(_low_confidence_api())
        result = processed.result

        assert result.framework.id == "nodejs"
        assert "framework" in result.fallbacks_applied
        assert "app_type" not in result.fallbacks_applied
        assert result.infrastructure.requirements["database"].required is True
        assert result.original_confidence == pytest.approx(0.2)
        assert processed.report.is_valid
        assert any(s.startswith("Framework detection used fallback") for s in processed.report.suggestions)
        _assert_in_range(result)

    def test_fallbacks_disabled(self):
        processed = _processor(enable_fallbacks=False).process(_low_confidence_api())
        assert processed.result.framework.id == "unknown"
        assert processed.result.fallbacks_applied == []
        assert processed.report.confidence_level == ConfidenceLevel.LOW

    def test_invalid_result_is_repaired(self, make_result):
        processed = _processor().process(make_result(framework_confidence=1.5))
        assert processed.report.is_valid
        assert processed.result.fallbacks_applied == ["framework"]
        _assert_in_range(processed.result)

    def test_missing_timestamp_is_filled(self):
        data = _low_confidence_api()
        del data["timestamp"]
        processed = _processor().process(data)
        assert isinstance(processed.result.timestamp, datetime)
        assert processed.report.is_valid

    def test_unparseable_mapping_is_reported(self):
        processed = _processor().process({"framework": "react"})
        assert processed.result is None
        assert not processed.report.is_valid
        assert processed.report.issues

    def test_unexpected_error_is_contained(self, make_result, monkeypatch):
        processor = _processor()

        def explode(result):
            raise RuntimeError("boom")

        monkeypatch.setattr(processor.validator, "validate", explode)
        result = make_result()
        processed = processor.process(result)

        assert processed.result is result
        assert processed.report.is_valid is False
        assert processed.report.confidence_level == ConfidenceLevel.ERROR
        assert processed.report.issues == ["Processing error: boom"]
        assert processed.processing_error == "boom"

    def test_error_keeps_parsed_mapping(self):
        data = _low_confidence_api()
        processed = _processor().process(data, {"files": "not-a-list"})

        assert processed.report.confidence_level == ConfidenceLevel.ERROR
        assert processed.processing_error
        assert processed.result is not None
        assert processed.result.framework.id == "unknown"
        assert processed.result.fallbacks_applied == []


class TestCaching:
    """Tests for cache integration."""

    def test_second_call_hits_cache(self, make_result):
        processor = _processor()
        first = processor.process(make_result(), ANALYSIS_INPUT)
        second = processor.process(make_result(framework="vue"), ANALYSIS_INPUT)

        assert first.from_cache is False
        assert second.from_cache is True
        assert second.result.framework.id == "react"
        assert second.report.is_valid
        assert processor.stats()["cache"]["hits"] == 1

    def test_no_input_no_caching(self, make_result):
        processor = _processor()
        processor.process(make_result())
        assert len(processor.cache) == 0

    def test_cache_disabled(self, make_result):
        processor = _processor(enable_cache=False)
        processor.process(make_result(), ANALYSIS_INPUT)
        assert processor.process(make_result(), ANALYSIS_INPUT).from_cache is False
        assert len(processor.cache) == 0

    def test_invalid_result_is_not_cached(self, make_result):
        processor = _processor(enable_fallbacks=False)
        processed = processor.process(make_result(framework_confidence=1.5), ANALYSIS_INPUT)
        assert not processed.report.is_valid
        assert len(processor.cache) == 0

    def test_cache_sized_from_config(self):
        processor = AnalysisProcessor(ConsensusConfig(cache=CacheConfig(max_entries=2)))
        assert processor.cache.max_entries == 2


class TestProcessMany:
    """Tests for process_many()."""

    def test_two_source_consensus(self, make_result):
        source_a = make_result(
            framework="react", framework_confidence=0.9,
            app_type="spa", app_type_confidence=0.8,
            requirements={"database": (False, 0.7)},
        )
        source_b = {
            "framework": {"id": "react", "confidence": 0.6},
            "appType": {"id": "unknown", "confidence": 0.1},
            "infrastructure": {"requirements": {}, "complexity": 1, "confidence": 0.5},
            "confidence": 0.4,
            "timestamp": "2025-01-15T10:05:00",
        }
        processed = _processor().process_many([source_a, source_b])
        result = processed.result

        assert result.framework.id == "react"
        assert result.app_type.id == "spa"
        assert result.infrastructure.requirements["database"].required is False
        assert result.infrastructure.requirements["database"].confidence == pytest.approx(0.7)
        assert result.sources == 2
        assert result.fallbacks_applied == []
        _assert_in_range(result)

    def test_partial_source_takes_part_in_vote(self, make_result):
        source_a = make_result(
            framework="react", framework_confidence=0.9,
            app_type="spa", app_type_confidence=0.8,
            requirements={"database": (False, 0.7)},
        )
        source_b = {
            "framework": {"id": "react", "confidence": 0.6},
            "appType": {"id": "unknown", "confidence": 0.1},
        }
        processed = _processor().process_many([source_a, source_b])
        result = processed.result

        assert result.sources == 2
        assert result.framework.id == "react"
        assert result.framework.confidence == pytest.approx(0.875)
        assert result.app_type.id == "spa"
        assert not any("excluded" in w for w in processed.report.warnings)
        _assert_in_range(result)

    def test_source_without_timestamp_is_combined(self, make_result):
        partial = make_result(framework="react").model_copy(update={"timestamp": None})
        processed = _processor().process_many([make_result(framework="react"), partial])
        assert processed.result.sources == 2
        assert processed.result.timestamp is not None

    def test_invalid_sources_are_excluded(self, make_result):
        valid = make_result(framework="react", framework_confidence=0.9)
        invalid = make_result(framework="vue", framework_confidence=1.5)
        processed = _processor().process_many([valid, invalid])

        assert processed.result.framework.id == "react"
        assert processed.result.sources == 1
        assert any(w.startswith("Source 2 excluded") for w in processed.report.warnings)

    def test_unparseable_source_is_excluded(self, make_result):
        processed = _processor().process_many([make_result(), ["not", "a", "result"]])
        assert processed.result.framework.id == "react"
        assert any(w.startswith("Source 2 excluded") for w in processed.report.warnings)

    def test_empty_input_degrades(self):
        processed = _processor().process_many([])
        assert processed.report.confidence_level == ConfidenceLevel.ERROR
        assert processed.processing_error

    def test_combiner_failure_degrades(self, make_result, monkeypatch):
        processor = _processor()

        def explode(results):
            raise RuntimeError("vote failed")

        monkeypatch.setattr(processor.combiner, "combine", explode)
        processed = processor.process_many([make_result(), make_result()])

        assert processed.result is None
        assert processed.report.issues == ["Processing error: vote failed"]


class TestAlternatives:
    """Tests for generate_alternatives()."""

    def test_alternatives_sorted_and_limited(self, make_result):
        result = make_result(
            framework_alternatives=[("vue", 0.5), ("angular", 0.3), ("svelte", 0.2)],
            app_type_alternatives=[("ssr", 0.4)],
            requirements={"database": (True, 0.6)},
        )
        alternatives = _processor().generate_alternatives(result)

        assert [a.suggestion for a in alternatives] == [
            "Consider if database is really needed for SPA", "vue", "ssr", "angular",
        ]
        assert [a.type for a in alternatives] == ["infrastructure", "framework", "app_type", "framework"]
        assert alternatives[1].reason == "Alternative framework detection with 50% confidence"

    def test_no_alternatives(self, make_result):
        assert _processor().generate_alternatives(make_result()) == []


class TestStats:
    def test_stats_report_options(self):
        stats = _processor(enable_cache=False).stats()
        assert stats["options"] == {"enable_cache": False, "enable_fallbacks": True}
        assert stats["cache"]["size"] == 0
