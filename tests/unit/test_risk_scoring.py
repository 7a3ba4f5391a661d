"""
Unit tests for leakage risk scoring.
"""

from datetime import date

import pytest

from care_platform.errors import ValidationError
from care_coordination.risk_scoring import (
    RiskLevel,
    RiskScorer,
    RiskWeights,
    compute_risk,
    enrich_patient,
    rank_patients_by_risk,
)
from care_coordination.risk_scoring import factors


class TestFactorBands:
    """Tests for individual factor normalization."""

    @pytest.mark.parametrize(
        "age,expected",
        [(95, 100), (80, 100), (79, 83), (70, 83), (69, 67), (60, 67), (50, 50), (40, 33), (39, 17), (0, 17)],
    )
    def test_age_bands(self, age, expected):
        """Test age band boundaries."""
        assert factors.age_risk(age) == expected

    @pytest.mark.parametrize(
        "days,expected",
        [(30, 100), (14, 100), (13, 80), (10, 80), (7, 60), (5, 40), (3, 20), (2, 5), (0, 5)],
    )
    def test_discharge_decay(self, days, expected):
        """Test risk grows with days since discharge."""
        assert factors.time_since_discharge_risk(days) == expected

    @pytest.mark.parametrize(
        "diagnosis,expected",
        [
            ("Coronary Artery Bypass Graft", 85),
            ("Lumbar spinal fusion L4-L5", 85),
            ("Right knee replacement", 65),
            ("Laparoscopic appendectomy", 25),
            ("Pneumonia", 50),
        ],
    )
    def test_diagnosis_complexity(self, diagnosis, expected):
        """Test diagnosis keyword lookup."""
        assert factors.diagnosis_complexity_risk(diagnosis) == expected

    @pytest.mark.parametrize(
        "insurance,expected",
        [
            ("Medicaid", 85),
            ("MassHealth Medicaid", 85),
            ("Medicare Advantage", 75),
            ("Harvard Pilgrim HMO", 60),
            ("Blue Cross Blue Shield", 25),
            ("Acme Health Plan", 50),
        ],
    )
    def test_insurance_network_risk(self, insurance, expected):
        """Test narrower networks score higher."""
        assert factors.insurance_risk(insurance) == expected

    @pytest.mark.parametrize("count,expected", [(0, 10), (1, 40), (2, 70), (3, 100), (7, 100)])
    def test_referral_history(self, count, expected):
        """Test prior unsuccessful referral banding."""
        assert factors.referral_history_risk(count) == expected

    def test_geographic_from_coordinates(self):
        """Test distance to nearest medical center drives geographic risk."""
        from care_platform.domain.models import GeoPoint

        near = GeoPoint(latitude=42.3631, longitude=-71.0686)
        worcester = GeoPoint(latitude=42.2626, longitude=-71.8023)

        assert factors.geographic_risk(near, None) == 20
        assert factors.geographic_risk(worcester, None) == 80

    def test_geographic_from_address(self):
        """Test locality keywords are used when no coordinates exist."""
        assert factors.geographic_risk(None, "45 Elm St, Somerville, MA") == 35
        assert factors.geographic_risk(None, "9 Main St, Springfield, MA") == 80
        assert factors.geographic_risk(None, None) is None

    def test_calculate_age(self):
        """Test age counts whole years at the reference date."""
        assert factors.calculate_age(date(1954, 3, 10), date(2026, 10, 16)) == 72
        assert factors.calculate_age(date(1954, 10, 17), date(2026, 10, 16)) == 71
        assert factors.calculate_age(date(1954, 10, 16), date(2026, 10, 16)) == 72

    def test_days_since_discharge_never_negative(self):
        """Test a future discharge date counts as zero days."""
        assert factors.calculate_days_since_discharge(date(2026, 9, 26), date(2026, 10, 16)) == 20
        assert factors.calculate_days_since_discharge(date(2026, 10, 20), date(2026, 10, 16)) == 0


class TestComputeRisk:
    """Tests for the weighted risk score."""

    def test_high_risk_example(self, high_risk_patient, as_of):
        """Test elderly Medicaid bypass patient 20 days out is high risk."""
        result = compute_risk(high_risk_patient, as_of)

        assert result.level == RiskLevel.HIGH
        assert result.score >= 70
        assert result.score == 82
        assert result.factors.age == 83
        assert result.factors.diagnosis_complexity == 85
        assert result.factors.time_since_discharge == 100
        assert result.factors.insurance_type == 85
        assert result.defaulted_factors == ("geographic_factors", "previous_referral_history")
        assert result.has_defaults

    def test_low_risk_example(self, low_risk_patient, as_of):
        """Test young, well-insured, nearby patient is low risk."""
        result = compute_risk(low_risk_patient, as_of)

        assert result.score == 18
        assert result.level == RiskLevel.LOW
        assert result.defaulted_factors == ()

    def test_medium_risk_example(self, medium_risk_patient, as_of):
        """Test mid-range patient lands in the medium band."""
        result = compute_risk(medium_risk_patient, as_of)

        assert result.score == 64
        assert result.level == RiskLevel.MEDIUM
        assert result.factors.geographic_factors == 55

    def test_deterministic(self, high_risk_patient, as_of):
        """Test same snapshot and date yield the same result."""
        assert compute_risk(high_risk_patient, as_of) == compute_risk(high_risk_patient, as_of)

    def test_missing_optional_fields_default_to_neutral(self, as_of):
        """Test missing optional attributes score 50 and are reported."""
        result = compute_risk(
            {"patient_id": "p1", "diagnosis": "Pneumonia", "discharge_date": "2026-10-01"},
            as_of,
        )

        assert result.factors.age == 50
        assert result.factors.insurance_type == 50
        assert result.factors.geographic_factors == 50
        assert result.factors.previous_referral_history == 50
        assert set(result.defaulted_factors) == {
            "age",
            "insurance_type",
            "geographic_factors",
            "previous_referral_history",
        }

    def test_accepts_timestamps_for_dates(self, high_risk_patient, as_of):
        """Test ISO timestamps are reduced to calendar dates."""
        patient = dict(high_risk_patient, discharge_date="2026-09-26T14:30:00Z")
        assert compute_risk(patient, as_of).factors.time_since_discharge == 100

    @pytest.mark.parametrize("missing", ["id", "diagnosis", "discharge_date"])
    def test_missing_required_field_raises(self, high_risk_patient, as_of, missing):
        """Test structurally required fields raise ValidationError."""
        patient = {k: v for k, v in high_risk_patient.items() if k != missing}

        with pytest.raises(ValidationError) as exc_info:
            compute_risk(patient, as_of)

        assert exc_info.value.code == "VALIDATION_ERROR"

    def test_blank_diagnosis_raises(self, high_risk_patient, as_of):
        """Test blank diagnosis is rejected."""
        with pytest.raises(ValidationError):
            compute_risk(dict(high_risk_patient, diagnosis="   "), as_of)

    def test_score_rounds_half_up(self, config, as_of):
        """Test x.5 weighted sums round up."""
        weights = RiskWeights(
            age=0.5,
            diagnosis_complexity=0.5,
            time_since_discharge=0.0,
            insurance_type=0.0,
            geographic_factors=0.0,
            previous_referral_history=0.0,
        )
        scorer = RiskScorer(weights=weights, config=config)

        # age 83 * 0.5 + unknown diagnosis 50 * 0.5 = 66.5
        result = scorer.compute(
            {
                "patient_id": "p-half",
                "date_of_birth": "1954-03-10",
                "diagnosis": "Pneumonia",
                "discharge_date": "2026-10-01",
            },
            as_of,
        )
        assert result.score == 67

    def test_weights_must_sum_to_one(self):
        """Test invalid weight sets are rejected."""
        with pytest.raises(ValueError):
            RiskWeights(age=0.9)


class TestRiskLevels:
    """Tests for level thresholds."""

    @pytest.mark.parametrize(
        "score,level",
        [(100, RiskLevel.HIGH), (70, RiskLevel.HIGH), (69, RiskLevel.MEDIUM), (40, RiskLevel.MEDIUM), (39, RiskLevel.LOW), (0, RiskLevel.LOW)],
    )
    def test_default_thresholds(self, config, score, level):
        """Test default band boundaries."""
        assert RiskScorer(config=config).classify(score) == level

    def test_custom_thresholds(self, config):
        """Test thresholds can be overridden."""
        scorer = RiskScorer(high_threshold=80, medium_threshold=50, config=config)

        assert scorer.classify(79) == RiskLevel.MEDIUM
        assert scorer.classify(49) == RiskLevel.LOW

    def test_inverted_thresholds_rejected(self, config):
        """Test medium threshold must sit below high."""
        with pytest.raises(ValidationError):
            RiskScorer(high_threshold=40, medium_threshold=70, config=config)


class TestEnrichment:
    """Tests for enriched patient profiles and worklist ranking."""

    def test_enrich_patient(self, high_risk_patient, as_of):
        """Test derived fields accompany the computed risk."""
        profile = enrich_patient(high_risk_patient, as_of)

        assert profile.patient.patient_id == "pat-high"
        assert profile.age == 72
        assert profile.days_since_discharge == 20
        assert profile.leakage_risk.level == RiskLevel.HIGH

    def test_enrich_without_birth_date(self, as_of):
        """Test age stays unknown when no birth date is given."""
        profile = enrich_patient(
            {"patient_id": "p1", "diagnosis": "Pneumonia", "discharge_date": "2026-10-10"}, as_of
        )
        assert profile.age is None
        assert profile.days_since_discharge == 6

    def test_rank_patients_by_risk(self, high_risk_patient, low_risk_patient, medium_risk_patient, as_of):
        """Test worklist is ordered riskiest first."""
        ranked = rank_patients_by_risk([low_risk_patient, high_risk_patient, medium_risk_patient], as_of)

        assert [p.patient.patient_id for p in ranked] == ["pat-high", "pat-medium", "pat-low"]

    def test_rank_ties_by_patient_id(self, high_risk_patient, as_of):
        """Test equal scores fall back to patient id order."""
        twin = dict(high_risk_patient, id="pat-aaa")
        ranked = rank_patients_by_risk([high_risk_patient, twin], as_of)

        assert [p.patient.patient_id for p in ranked] == ["pat-aaa", "pat-high"]
