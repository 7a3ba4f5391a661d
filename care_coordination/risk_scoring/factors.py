"""
Risk Factor Normalization

Each function maps one raw patient attribute onto a 0-100 risk value.
Bands and lookup tables are module-level constants so deployments can
override them.
"""

from datetime import date
from typing import Optional

from care_platform.domain.geo import nearest_medical_center_distance
from care_platform.domain.models import GeoPoint

NEUTRAL_FACTOR_SCORE = 50

# (minimum age, risk)
AGE_BANDS: tuple[tuple[int, int], ...] = (
    (80, 100),
    (70, 83),
    (60, 67),
    (50, 50),
    (40, 33),
)
AGE_FLOOR_SCORE = 17

HIGH_COMPLEXITY_PROCEDURES = (
    "cardiac catheterization",
    "coronary artery bypass",
    "spinal fusion",
    "spine surgery",
    "lung surgery",
    "kidney surgery",
    "liver surgery",
    "brain surgery",
    "heart surgery",
)
MODERATE_COMPLEXITY_PROCEDURES = (
    "hip replacement",
    "knee replacement",
    "shoulder replacement",
    "prostate surgery",
    "gallbladder surgery",
    "hernia repair",
)
LOW_COMPLEXITY_PROCEDURES = (
    "cataract surgery",
    "thyroid surgery",
    "breast surgery",
    "appendectomy",
    "colonoscopy",
)
DIAGNOSIS_COMPLEXITY_SCORES = {
    "high": 85,
    "moderate": 65,
    "low": 25,
    "unknown": 50,
}

# (minimum days since discharge, risk); risk rises the longer nobody follows up
DISCHARGE_DECAY_BANDS: tuple[tuple[int, int], ...] = (
    (14, 100),
    (10, 80),
    (7, 60),
    (5, 40),
    (3, 20),
)
DISCHARGE_FLOOR_SCORE = 5

# Insurance keyword -> risk; narrower networks score higher. First match wins.
INSURANCE_NETWORK_RISK: tuple[tuple[str, int], ...] = (
    ("medicaid", 85),
    ("medicare", 75),
    ("hmo", 60),
    ("kaiser", 60),
    ("blue cross", 25),
    ("united", 25),
    ("aetna", 25),
    ("cigna", 25),
)
UNKNOWN_INSURANCE_SCORE = 50

# (distance to nearest major medical center in miles, risk)
CARE_DESERT_DISTANCE_BANDS: tuple[tuple[float, int], ...] = (
    (3.0, 20),
    (8.0, 35),
    (15.0, 55),
)
CARE_DESERT_SCORE = 80

# Address locality keyword -> risk, used when no coordinates are known
LOCALITY_ACCESS_RISK: tuple[tuple[tuple[str, ...], int], ...] = (
    (("boston", "cambridge", "longwood"), 20),
    (("brookline", "somerville", "newton", "watertown"), 35),
    (("quincy", "medford", "malden", "waltham"), 55),
)

# (minimum missed/cancelled prior referrals, risk)
REFERRAL_HISTORY_BANDS: tuple[tuple[int, int], ...] = (
    (3, 100),
    (2, 70),
    (1, 40),
)
CLEAN_REFERRAL_HISTORY_SCORE = 10


def calculate_age(date_of_birth: date, as_of: date) -> int:
    """Whole years between birth date and `as_of`."""
    age = as_of.year - date_of_birth.year
    if (as_of.month, as_of.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return max(age, 0)


def calculate_days_since_discharge(discharge_date: date, as_of: date) -> int:
    """Days elapsed since discharge; a future discharge date counts as zero."""
    return max((as_of - discharge_date).days, 0)


def age_risk(age: int) -> int:
    """Older patients are more likely to drop out of follow-up."""
    for minimum, score in AGE_BANDS:
        if age >= minimum:
            return score
    return AGE_FLOOR_SCORE


def diagnosis_complexity_risk(diagnosis: str) -> int:
    """More complex procedures carry more complication and leakage risk."""
    diagnosis_lower = diagnosis.lower()

    if any(term in diagnosis_lower for term in HIGH_COMPLEXITY_PROCEDURES):
        return DIAGNOSIS_COMPLEXITY_SCORES["high"]
    if any(term in diagnosis_lower for term in MODERATE_COMPLEXITY_PROCEDURES):
        return DIAGNOSIS_COMPLEXITY_SCORES["moderate"]
    if any(term in diagnosis_lower for term in LOW_COMPLEXITY_PROCEDURES):
        return DIAGNOSIS_COMPLEXITY_SCORES["low"]
    return DIAGNOSIS_COMPLEXITY_SCORES["unknown"]


def time_since_discharge_risk(days_since_discharge: int) -> int:
    """Risk grows with every day that passes without follow-up."""
    for minimum, score in DISCHARGE_DECAY_BANDS:
        if days_since_discharge >= minimum:
            return score
    return DISCHARGE_FLOOR_SCORE


def insurance_risk(insurance: str) -> int:
    """Narrow provider networks limit where the patient can be seen."""
    insurance_lower = insurance.lower()
    for keyword, score in INSURANCE_NETWORK_RISK:
        if keyword in insurance_lower:
            return score
    return UNKNOWN_INSURANCE_SCORE


def geographic_risk(location: Optional[GeoPoint], address: Optional[str]) -> Optional[int]:
    """
    Care-desert indicator.

    Uses distance to the nearest major medical center when coordinates are
    known, otherwise locality keywords in the address.

    Returns:
        Risk value, or None when neither coordinates nor address are available
    """
    if location is not None:
        distance = nearest_medical_center_distance(location)
        for limit, score in CARE_DESERT_DISTANCE_BANDS:
            if distance < limit:
                return score
        return CARE_DESERT_SCORE

    if not address:
        return None

    address_lower = address.lower()
    for keywords, score in LOCALITY_ACCESS_RISK:
        if any(keyword in address_lower for keyword in keywords):
            return score
    return CARE_DESERT_SCORE


def referral_history_risk(unsuccessful_referrals: int) -> int:
    """Patients who missed or cancelled referrals before tend to do so again."""
    for minimum, score in REFERRAL_HISTORY_BANDS:
        if unsuccessful_referrals >= minimum:
            return score
    return CLEAN_REFERRAL_HISTORY_SCORE
