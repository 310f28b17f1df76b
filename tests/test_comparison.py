"""Tests for comparison axes, summaries and simulated national averages."""

import pytest

from soil_health.soil.comparison import (
    AXES,
    NOT_AVAILABLE,
    ComparisonMetrics,
    _string_hash,
    build_comparison_axes,
    normalize_for_comparison,
    simulated_country_average,
    summarize_axes,
)
from soil_health.soil.pedotransfer import LinearTexturePTF


class TestNormalizeForComparison:
    """Test mapping records onto the five axes."""

    def test_vess_record(self, vess_record):
        metrics = normalize_for_comparison(vess_record)

        assert metrics == ComparisonMetrics(visual_score=4)

    def test_composition_record(self, composition_record):
        metrics = normalize_for_comparison(composition_record)

        assert metrics.visual_score is None
        assert metrics.sand_percent == 60
        assert metrics.clay_percent == 20
        assert metrics.silt_percent == 20
        assert metrics.available_water == pytest.approx(10.3, abs=0.01)

    def test_composition_with_other_model(self, composition_record):
        metrics = normalize_for_comparison(composition_record, LinearTexturePTF())

        assert metrics.available_water == pytest.approx(17.55)


class TestBuildComparisonAxes:
    """Test pairing of subject and reference metrics."""

    def test_axis_dropped_only_when_both_sides_missing(self):
        axes = build_comparison_axes(ComparisonMetrics(visual_score=4), None)

        assert [a.name for a in axes] == ["visual_score"]
        assert axes[0].reference_value is None
        assert axes[0].reference_chart_value == 0.0

    def test_one_sided_axes_kept_with_raw_nulls(self):
        subject = ComparisonMetrics(visual_score=4)
        reference = simulated_country_average("ES")

        axes = build_comparison_axes(subject, reference)

        assert [a.name for a in axes] == [spec.name for spec in AXES]
        sand = next(a for a in axes if a.name == "sand_percent")
        assert sand.subject_value is None
        assert sand.subject_chart_value == 0.0
        assert sand.reference_value == reference.sand_percent

    def test_chart_values_clamped(self):
        subject = ComparisonMetrics(visual_score=7, available_water=80, sand_percent=-3)

        axes = {a.name: a for a in build_comparison_axes(subject, None)}

        assert axes["visual_score"].subject_chart_value == 5
        assert axes["available_water"].subject_chart_value == 50
        assert axes["sand_percent"].subject_chart_value == 0
        assert axes["visual_score"].subject_value == 7

    def test_full_marks(self):
        axes = {a.name: a for a in build_comparison_axes(simulated_country_average("FR"), None)}

        assert axes["visual_score"].full_mark == 5
        assert axes["clay_percent"].full_mark == 100
        assert axes["available_water"].full_mark == 50
        assert axes["available_water"].label == "Available Water %"

    def test_nothing_to_compare(self):
        assert build_comparison_axes(None, None) == []


class TestSummarizeAxes:
    """Test human-readable axis summaries."""

    def _summary(self, subject, reference, name="sand_percent"):
        axes = build_comparison_axes(
            ComparisonMetrics(**{name: subject}), ComparisonMetrics(**{name: reference})
        )
        return summarize_axes(axes)[0]

    def test_above_average(self):
        summary = self._summary(60, 50)

        assert summary.subject_text == "60%"
        assert summary.reference_text == "50%"
        assert summary.verdict == "20% above average"

    def test_below_average(self):
        assert self._summary(40, 50).verdict == "20% below average"

    def test_within_threshold(self):
        assert self._summary(52, 50).verdict == "similar to average"

    def test_custom_threshold(self):
        axes = build_comparison_axes(
            ComparisonMetrics(sand_percent=52), ComparisonMetrics(sand_percent=50)
        )

        assert summarize_axes(axes, threshold_percent=1)[0].verdict == "4% above average"

    def test_zero_reference(self):
        assert self._summary(5, 0).verdict == "100% above average"
        assert self._summary(0, 0).verdict == "similar to average"

    def test_missing_value_reads_not_available(self):
        summary = self._summary(None, 35.5)

        assert summary.subject_text == NOT_AVAILABLE
        assert summary.subject_text != "0%"
        assert summary.reference_text == "36%"
        assert summary.verdict == "not comparable"

    def test_vess_formatting(self):
        summary = self._summary(4, 3.25, name="visual_score")

        assert summary.label == "VESS Score"
        assert summary.subject_text == "4.0"
        assert summary.reference_text == "3.2"
        assert summary.verdict == "23% above average"


class TestSimulatedCountryAverage:
    """Test deterministic stand-in national averages."""

    def test_string_hash(self):
        assert _string_hash("") == 0
        assert _string_hash("ES") == 69 * 31 + 83

    def test_string_hash_is_signed_32_bit(self):
        value = _string_hash("a considerably longer country description")

        assert -(2**31) <= value < 2**31

    def test_deterministic_and_case_insensitive(self):
        assert simulated_country_average("es") == simulated_country_average(" ES ")
        assert simulated_country_average("ES") == simulated_country_average("ES")

    def test_countries_differ(self):
        assert simulated_country_average("ES") != simulated_country_average("NZ")

    @pytest.mark.parametrize("code", ["ES", "US", "NZ", "KE", "BR", "IN"])
    def test_plausible_ranges(self, code):
        metrics = simulated_country_average(code)

        assert 1.5 <= metrics.visual_score <= 5.0
        assert 20 <= metrics.sand_percent <= 70
        assert 10 <= metrics.clay_percent <= 40
        assert metrics.silt_percent == pytest.approx(
            max(0.0, 100 - metrics.sand_percent - metrics.clay_percent), abs=0.11
        )
        assert 5 <= metrics.available_water <= 20
