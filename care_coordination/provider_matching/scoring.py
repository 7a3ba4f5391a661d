"""
Provider Match Factors

Per-factor scoring used by the matcher: insurance network membership,
specialty match, proximity tiers, availability parsing and rating.
"""

import re
from datetime import date, datetime
from typing import Optional

from care_platform.domain.models import ProviderSnapshot

IN_NETWORK_SCORE = 100
OUT_OF_NETWORK_SCORE = 25
SPECIALTY_MATCH_SCORE = 100
SPECIALTY_MISMATCH_SCORE = 15

# (distance upper bound in miles, score)
PROXIMITY_TIERS: tuple[tuple[float, int], ...] = (
    (1.0, 100),
    (3.0, 90),
    (5.0, 80),
    (10.0, 70),
    (15.0, 60),
    (20.0, 50),
    (30.0, 40),
    (50.0, 30),
)
FAR_PROXIMITY_BASE = 25

SPECIALTY_SYNONYMS: dict[str, tuple[str, ...]] = {
    "physical therapy": ("physical therapy", "rehabilitation", "sports medicine", "pt"),
    "cardiology": ("cardiology", "heart", "cardiac", "cardiovascular"),
    "orthopedics": ("orthopedics", "orthopedic", "bone", "joint", "musculoskeletal"),
    "surgery": ("surgery", "surgical", "operative"),
    "neurosurgery": ("neurosurgery", "brain surgery", "spine surgery", "neurological surgery"),
    "primary care": ("primary care", "family medicine", "internal medicine", "general practice"),
    "pediatrics": ("pediatrics", "children", "child", "adolescent"),
    "obgyn": ("obgyn", "obstetrics", "gynecology", "women's health"),
    "dermatology": ("dermatology", "skin", "cosmetic"),
    "psychiatry": ("psychiatry", "mental health", "behavioral health", "psychology"),
}

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Whole month names or abbreviations; lowercase "may" is the verb
MONTH_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(?:january|jan)\b", re.IGNORECASE),
    re.compile(r"\b(?:february|feb)\b", re.IGNORECASE),
    re.compile(r"\b(?:march|mar)\b", re.IGNORECASE),
    re.compile(r"\b(?:april|apr)\b", re.IGNORECASE),
    re.compile(r"\bMay\b"),
    re.compile(r"\b(?:june|jun)\b", re.IGNORECASE),
    re.compile(r"\b(?:july|jul)\b", re.IGNORECASE),
    re.compile(r"\b(?:august|aug)\b", re.IGNORECASE),
    re.compile(r"\b(?:september|sept|sep)\b", re.IGNORECASE),
    re.compile(r"\b(?:october|oct)\b", re.IGNORECASE),
    re.compile(r"\b(?:november|nov)\b", re.IGNORECASE),
    re.compile(r"\b(?:december|dec)\b", re.IGNORECASE),
)

# Free-text phrases checked in order after weekday names; first match wins
AVAILABILITY_PHRASES: tuple[tuple[tuple[str, ...], int], ...] = (
    (("this week",), 80),
    (("next week",), 60),
    (("within 2 weeks", "within two weeks"), 50),
)
AVAILABILITY_LATE_PHRASES: tuple[tuple[tuple[str, ...], int], ...] = (
    (("next month",), 40),
    (("within a month", "within 1 month"), 35),
    (("within 2 months", "within two months"), 25),
    (("within 3 months", "within three months"), 15),
)
UNPARSED_AVAILABILITY_SCORE = 20

# (days until the appointment date, score)
AVAILABILITY_DAY_BANDS: tuple[tuple[int, int], ...] = (
    (0, 100),
    (1, 95),
    (7, 80),
    (14, 60),
    (31, 40),
    (62, 25),
    (92, 15),
)
DISTANT_AVAILABILITY_SCORE = 10

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_WHITESPACE = re.compile(r"\s+")


def normalize_plan(name: str) -> str:
    """Casefold and collapse whitespace for insurance-plan comparison."""
    return _WHITESPACE.sub(" ", name).strip().casefold()


def is_in_network(provider: ProviderSnapshot, insurance: Optional[str]) -> bool:
    """
    Check whether the patient's plan is one the provider accepts.

    Membership is exact after normalization; "Blue Cross" does not match
    "Blue Cross Blue Shield".
    """
    if not insurance:
        return False

    plan = normalize_plan(insurance)
    return any(
        normalize_plan(accepted) == plan
        for accepted in (*provider.in_network_plans, *provider.accepted_insurance)
    )


def _mentions(text: str, term: str) -> bool:
    # Term must start on a word boundary so "pt" does not match "department"
    return re.search(r"(?<![a-z0-9])" + re.escape(term), text) is not None


def _contains_either(a: str, b: str) -> bool:
    return bool(a) and bool(b) and (a in b or b in a)


def _share_synonym_group(a: str, b: str) -> bool:
    for terms in SPECIALTY_SYNONYMS.values():
        if any(_mentions(a, term) for term in terms) and any(_mentions(b, term) for term in terms):
            return True
    return False


def has_specialty_match(provider: ProviderSnapshot, required_followup: Optional[str]) -> bool:
    """
    Check whether the provider covers the required follow-up service.

    Matches the provider type or any specialty directly, by containment
    in either direction, or through a shared synonym group.
    """
    if not required_followup:
        return False

    followup = required_followup.strip().lower()
    candidates = [provider.type.strip().lower()] if provider.type.strip() else []
    candidates.extend(specialty.lower() for specialty in provider.specialties)

    return any(
        _contains_either(candidate, followup) or _share_synonym_group(candidate, followup)
        for candidate in candidates
    )


def proximity_score(distance: Optional[float]) -> int:
    """Non-increasing step function of distance in miles; unknown scores 0."""
    if distance is None:
        return 0

    for limit, score in PROXIMITY_TIERS:
        if distance < limit:
            return score
    return max(0, FAR_PROXIMITY_BASE - int((distance - 50.0) // 10))


def _parse_iso_date(text: str) -> Optional[date]:
    if not _ISO_DATE.match(text):
        return None
    try:
        if "T" in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _score_days_until(days_until: int) -> int:
    for limit, score in AVAILABILITY_DAY_BANDS:
        if days_until <= limit:
            return score
    return DISTANT_AVAILABILITY_SCORE


def availability_score(availability_next: Optional[str], as_of: date) -> int:
    """
    Score how soon the provider can see the patient.

    Args:
        availability_next: ISO date or free text such as "Tomorrow" or "Next week"
        as_of: Reference date for weekday, month and ISO date arithmetic

    Returns:
        0-100 score; missing availability scores 0
    """
    if not availability_next:
        return 0

    raw = availability_next.strip()
    text = raw.lower()

    appointment = _parse_iso_date(raw)
    if appointment is not None:
        return _score_days_until((appointment - as_of).days)

    if any(phrase in text for phrase in ("today", "same day", "immediately")):
        return 100
    if any(phrase in text for phrase in ("tomorrow", "next day")):
        return 95

    for index, weekday in enumerate(WEEKDAYS):
        if weekday in text:
            days_until = (index - as_of.weekday()) % 7 or 7
            return max(30, 100 - days_until * 10)

    for phrases, score in AVAILABILITY_PHRASES:
        if any(phrase in text for phrase in phrases):
            return score

    for index, pattern in enumerate(MONTH_PATTERNS):
        if pattern.search(raw):
            months_until = (index - (as_of.month - 1)) % 12 or 12
            return max(10, 50 - months_until * 5)

    for phrases, score in AVAILABILITY_LATE_PHRASES:
        if any(phrase in text for phrase in phrases):
            return score

    return UNPARSED_AVAILABILITY_SCORE


def rating_score(rating: float) -> float:
    """Five-star rating on the 100-point scale."""
    return rating / 5.0 * 100.0
