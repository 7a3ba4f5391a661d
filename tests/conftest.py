"""
Pytest configuration and fixtures for care coordination tests.
"""

from datetime import date

import pytest

from care_platform.config import CoordinationConfig
from care_platform.domain.models import PatientSnapshot, ProviderSnapshot
from care_platform.referral_store.repository import InMemoryReferralRepository
from care_platform.shared_services.care_directory import InMemoryCareDirectory
from care_platform.shared_services.event_bus import ReferralEventBus
from care_coordination.referral_lifecycle import ReferralLifecycle

# Friday
AS_OF = date(2026, 10, 16)

BACK_BAY = (42.3505, -71.0743)
CAMBRIDGE = (42.3736, -71.1097)
WORCESTER = (42.2626, -71.8023)
MGH = (42.3631, -71.0686)


@pytest.fixture
def as_of():
    """Fixed reference date for age, discharge and availability arithmetic."""
    return AS_OF


@pytest.fixture
def config():
    """Configuration with explicit defaults, independent of the environment."""
    return CoordinationConfig(
        default_actor="Care Coordinator",
        risk_high_threshold=70,
        risk_medium_threshold=40,
        default_match_limit=5,
        include_unlocated_providers=True,
        store_max_retries=2,
    )


@pytest.fixture
def high_risk_patient():
    """72-year-old Medicaid patient 20 days after a bypass."""
    return {
        "id": "pat-high",
        "name": "Margaret Chen",
        "date_of_birth": "1954-03-10",
        "diagnosis": "Coronary Artery Bypass Graft",
        "discharge_date": "2026-09-26",
        "insurance": "Medicaid",
        "required_followup": "Cardiology",
    }


@pytest.fixture
def low_risk_patient():
    """Young patient near MGH, one day after cataract surgery."""
    return {
        "patient_id": "pat-low",
        "name": "Daniel Ortiz",
        "date_of_birth": "1996-05-01",
        "diagnosis": "Cataract surgery",
        "discharge_date": "2026-10-15",
        "insurance": "Blue Cross Blue Shield",
        "latitude": MGH[0],
        "longitude": MGH[1],
        "prior_unsuccessful_referrals": 0,
    }


@pytest.fixture
def medium_risk_patient():
    """Medicare patient in Quincy eight days after a hip replacement."""
    return {
        "patient_id": "pat-medium",
        "date_of_birth": "1961-01-01",
        "diagnosis": "Total hip replacement",
        "discharge_date": "2026-10-08",
        "insurance": "Medicare",
        "address": "12 Hancock St, Quincy, MA",
        "prior_unsuccessful_referrals": 1,
    }


@pytest.fixture
def matching_patient():
    """Back Bay patient needing cardiology follow-up."""
    return PatientSnapshot(
        patient_id="pat-match",
        name="Alice Rivera",
        diagnosis="Cardiac catheterization",
        discharge_date=date(2026, 10, 10),
        insurance="Blue Cross Blue Shield",
        latitude=BACK_BAY[0],
        longitude=BACK_BAY[1],
        required_followup="Cardiology",
    )


@pytest.fixture
def providers():
    """Candidate providers around Boston, one without coordinates."""
    return [
        ProviderSnapshot(
            provider_id="p-heart",
            name="Back Bay Heart Center",
            type="Cardiology",
            specialties=["Cardiology"],
            accepted_insurance=["Blue Cross Blue Shield", "Medicare"],
            rating=4.8,
            latitude=BACK_BAY[0],
            longitude=BACK_BAY[1],
            availability_next="Tomorrow",
        ),
        ProviderSnapshot(
            provider_id="p-ortho",
            name="Cambridge Orthopedics",
            type="Orthopedics",
            specialties=["Orthopedic Surgery"],
            accepted_insurance=["Aetna"],
            rating=4.2,
            latitude=CAMBRIDGE[0],
            longitude=CAMBRIDGE[1],
            availability_next="Next week",
        ),
        ProviderSnapshot(
            provider_id="p-far",
            name="Worcester Cardiology Associates",
            type="Cardiology",
            specialties=["Cardiology"],
            in_network_plans=["Blue Cross Blue Shield"],
            rating=4.8,
            latitude=WORCESTER[0],
            longitude=WORCESTER[1],
        ),
        ProviderSnapshot(
            provider_id="p-nowhere",
            name="Telehealth Cardiology",
            type="Cardiology",
            specialties=["Cardiology"],
            accepted_insurance=["Blue Cross Blue Shield"],
            rating=5.0,
            availability_next="Today",
        ),
    ]


@pytest.fixture
def repository():
    """Fresh in-memory referral store."""
    return InMemoryReferralRepository()


@pytest.fixture
def event_bus():
    """Event bus with no subscribers."""
    return ReferralEventBus()


@pytest.fixture
def lifecycle(repository, event_bus, config):
    """Lifecycle service without directory checks."""
    return ReferralLifecycle(repository, event_bus=event_bus, config=config)


@pytest.fixture
def directory(high_risk_patient, providers):
    """Directory that knows one patient and the sample providers."""
    return InMemoryCareDirectory(patients=[high_risk_patient], providers=providers)
