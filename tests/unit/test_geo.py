"""
Unit tests for geographic helpers.
"""

import pytest

from care_platform.domain.geo import (
    approximate_coordinates,
    calculate_distance,
    distance_between,
    nearest_medical_center_distance,
)
from care_platform.domain.models import GeoPoint


class TestDistance:
    """Tests for great-circle distance."""

    def test_same_point(self):
        """Test zero distance between identical points."""
        assert calculate_distance(42.36, -71.06, 42.36, -71.06) == 0.0

    def test_boston_to_worcester(self):
        """Test a known distance in miles."""
        assert calculate_distance(42.3601, -71.0589, 42.2626, -71.8023) == pytest.approx(38.5, abs=1.0)

    def test_symmetric(self):
        """Test distance does not depend on direction."""
        a = GeoPoint(latitude=42.3505, longitude=-71.0743)
        b = GeoPoint(latitude=42.3736, longitude=-71.1097)

        assert distance_between(a, b) == pytest.approx(distance_between(b, a))


class TestApproximateCoordinates:
    """Tests for the locality gazetteer."""

    def test_specific_locality_wins(self):
        """Test neighborhoods are checked before the city."""
        point = approximate_coordinates("200 Boylston St, Boston, MA")
        assert point == GeoPoint(latitude=42.3505, longitude=-71.0743)

    def test_city_fallback(self):
        """Test the city centroid is used for other Boston addresses."""
        point = approximate_coordinates("1 City Hall Sq, Boston, MA")
        assert point == GeoPoint(latitude=42.3601, longitude=-71.0589)

    def test_unknown_locality(self):
        """Test unknown places are not guessed."""
        assert approximate_coordinates("Rural Route 3, Vermont") is None
        assert approximate_coordinates(None) is None


def test_nearest_medical_center():
    """Test distance to the closest major medical center."""
    mgh = GeoPoint(latitude=42.3631, longitude=-71.0686)
    assert nearest_medical_center_distance(mgh) == pytest.approx(0.0, abs=0.01)
