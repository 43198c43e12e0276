"""Tests for classification result validation."""

import pytest

from analysis_consensus.schema import Candidate, ConfidenceLevel
from analysis_consensus.validator import ResultValidator, confidence_tier


@pytest.fixture
def validator():
    return ResultValidator()


def _raw(**overrides) -> dict:
    """Build a raw result mapping as sent by a browser payload."""
    data = {
        "framework": {"id": "react", "confidence": 0.8},
        "appType": {"id": "spa", "confidence": 0.8},
        "infrastructure": {"requirements": {}, "complexity": 1, "confidence": 0.7},
        "confidence": 0.77,
        "timestamp": "2025-01-15T10:00:00",
    }
    data.update(overrides)
    return data


class TestConfidenceTier:
    """Tests for the fixed tier ladder."""

    @pytest.mark.parametrize("confidence,expected", [
        (None, ConfidenceLevel.LOW),
        (0.0, ConfidenceLevel.LOW),
        (0.29, ConfidenceLevel.LOW),
        (0.3, ConfidenceLevel.FAIR),
        (0.59, ConfidenceLevel.FAIR),
        (0.6, ConfidenceLevel.GOOD),
        (0.79, ConfidenceLevel.GOOD),
        (0.8, ConfidenceLevel.EXCELLENT),
        (1.0, ConfidenceLevel.EXCELLENT),
    ])
    def test_tier_boundaries(self, confidence, expected):
        assert confidence_tier(confidence) == expected


class TestStructure:
    """Tests for the schema pass."""

    def test_complete_result_is_valid(self, validator, make_result):
        report = validator.validate(
            make_result(framework_confidence=0.9, app_type_confidence=0.9,
                        infrastructure_confidence=0.9)
        )
        assert report.is_valid
        assert report.issues == []
        assert report.confidence_level == ConfidenceLevel.EXCELLENT

    def test_raw_mapping_is_accepted(self, validator):
        report = validator.validate(_raw())
        assert report.is_valid
        assert report.confidence_level == ConfidenceLevel.GOOD

    @pytest.mark.parametrize("field,key", [
        ("framework", "framework"),
        ("app_type", "appType"),
        ("infrastructure", "infrastructure"),
        ("confidence", "confidence"),
        ("timestamp", "timestamp"),
    ])
    def test_missing_field_is_an_issue(self, validator, field, key):
        data = _raw()
        del data[key]
        report = validator.validate(data)
        assert not report.is_valid
        assert f"Missing required field: {field}" in report.issues

    def test_missing_confidence_maps_to_low(self, validator):
        data = _raw()
        del data["confidence"]
        assert validator.validate(data).confidence_level == ConfidenceLevel.LOW

    def test_unparseable_value_is_an_issue(self, validator):
        report = validator.validate(_raw(framework={"id": "react", "confidence": "very high"}))
        assert not report.is_valid
        assert any(issue.startswith("Invalid value for framework.confidence") for issue in report.issues)

    def test_non_mapping_is_an_issue(self, validator):
        report = validator.validate("react spa")
        assert not report.is_valid
        assert report.confidence_level == ConfidenceLevel.LOW
        assert "must be an object" in report.issues[0]


class TestRanges:
    """Tests for hard range checks."""

    def test_framework_confidence_out_of_range(self, validator, make_result):
        report = validator.validate(make_result(framework_confidence=1.5))
        assert not report.is_valid
        assert "Framework confidence must be between 0 and 1" in report.issues

    def test_negative_app_type_confidence(self, validator, make_result):
        report = validator.validate(make_result(app_type_confidence=-0.1))
        assert "App type confidence must be between 0 and 1" in report.issues

    def test_complexity_out_of_range(self, validator, make_result):
        report = validator.validate(make_result(complexity=7))
        assert not report.is_valid
        assert any("complexity" in issue for issue in report.issues)

    def test_requirement_confidence_out_of_range(self, validator, make_result):
        report = validator.validate(make_result(requirements={"database": (True, 2.0)}))
        assert "Requirement 'database' confidence must be between 0 and 1" in report.issues

    def test_alternative_confidence_out_of_range(self, validator, make_result):
        report = validator.validate(make_result(framework_alternatives=[("vue", 1.2)]))
        assert not report.is_valid
        assert any("alternative 'vue'" in issue for issue in report.issues)

    def test_overall_confidence_out_of_range(self, validator):
        report = validator.validate(_raw(confidence=1.3))
        assert "Overall confidence must be between 0 and 1" in report.issues


class TestConsistency:
    """Consistency heuristics only ever warn."""

    def test_frontend_framework_with_api(self, validator, make_result):
        report = validator.validate(
            make_result(app_type="api", requirements={"database": (True, 0.8)})
        )
        assert report.is_valid
        assert any("Frontend framework react" in w for w in report.warnings)

    def test_backend_framework_with_spa(self, validator, make_result):
        report = validator.validate(make_result(framework="python"))
        assert report.is_valid
        assert any("Backend framework python" in w for w in report.warnings)

    def test_static_with_database(self, validator, make_result):
        report = validator.validate(
            make_result(app_type="static", requirements={"database": (True, 0.8)})
        )
        assert report.is_valid
        assert any("Static site detected" in w for w in report.warnings)

    def test_unknown_framework_with_high_confidence(self, validator, make_result):
        report = validator.validate(make_result(framework="unknown", framework_confidence=0.7))
        assert report.is_valid
        assert any("Unknown framework" in w for w in report.warnings)

    def test_unexpected_app_type(self, validator, make_result):
        report = validator.validate(make_result(app_type="desktop"))
        assert report.is_valid
        assert "Unexpected app type: desktop" in report.warnings

    def test_alternatives_containing_chosen_value(self, validator, make_result):
        report = validator.validate(make_result(framework_alternatives=[("react", 0.5)]))
        assert report.is_valid
        assert any("include the chosen value" in w for w in report.warnings)

    def test_unsorted_alternatives(self, validator, make_result):
        report = validator.validate(
            make_result(app_type_alternatives=[("ssr", 0.2), ("fullstack", 0.4)])
        )
        assert any("not sorted" in w for w in report.warnings)

    def test_large_confidence_spread(self, validator, make_result):
        report = validator.validate(
            make_result(framework_confidence=0.9, app_type_confidence=0.3,
                        infrastructure_confidence=0.3)
        )
        assert any("Large confidence difference" in w for w in report.warnings)

    def test_very_low_overall_confidence(self, validator, make_result):
        report = validator.validate(
            make_result(framework_confidence=0.1, app_type_confidence=0.1,
                        infrastructure_confidence=0.1)
        )
        assert report.is_valid
        assert report.confidence_level == ConfidenceLevel.LOW
        assert any("very low" in w for w in report.warnings)


class TestSuggestions:
    """Tests for advisory suggestions."""

    def test_api_without_database(self, validator, make_result):
        report = validator.validate(make_result(framework="nodejs", app_type="api"))
        assert any("API detected without database" in s for s in report.suggestions)

    def test_low_sub_field_confidence(self, validator, make_result):
        report = validator.validate(make_result(framework_confidence=0.5))
        assert any("framework detection" in s for s in report.suggestions)

    def test_empty_requirements(self, validator, make_result):
        report = validator.validate(make_result())
        assert any("database, authentication, or storage" in s for s in report.suggestions)

    def test_confident_result_has_no_upload_hints(self, validator, make_result):
        report = validator.validate(
            make_result(framework_confidence=0.9, app_type_confidence=0.9,
                        infrastructure_confidence=0.9, requirements={"database": (False, 0.8)})
        )
        assert report.suggestions == []

    def test_validation_does_not_mutate_input(self, validator, make_result):
        result = make_result(framework_alternatives=[("vue", 0.3)])
        before = result.model_dump()
        validator.validate(result)
        assert result.model_dump() == before
        assert result.framework.alternatives == [Candidate(id="vue", confidence=0.3)]
