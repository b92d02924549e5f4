"""
Satarknity - Geo Module
Device coordinates and reverse geocoding.
"""

from satarknity.geo.geocoding import (
    Coordinates,
    ResolvedLocation,
    ReverseGeocoder,
)

__all__ = [
    "Coordinates",
    "ResolvedLocation",
    "ReverseGeocoder",
]
