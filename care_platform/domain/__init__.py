"""
Domain Snapshots

Patient and provider snapshot models, geographic helpers and the boundary
normalization step.
"""

from .geo import (
    approximate_coordinates,
    calculate_distance,
    distance_between,
    nearest_medical_center_distance,
)
from .models import GeoPoint, PatientSnapshot, ProviderSnapshot
from .normalization import normalize_patient, normalize_provider, normalize_providers

__all__ = [
    "GeoPoint",
    "PatientSnapshot",
    "ProviderSnapshot",
    "normalize_patient",
    "normalize_provider",
    "normalize_providers",
    "approximate_coordinates",
    "calculate_distance",
    "distance_between",
    "nearest_medical_center_distance",
]
