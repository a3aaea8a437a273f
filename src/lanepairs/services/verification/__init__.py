"""Advisory geocode verification of directory cities."""

from .cache import VerificationCache
from .models import GeocodeMatch, VerificationResult
from .verifier import CityVerifier

__all__ = ["CityVerifier", "GeocodeMatch", "VerificationCache", "VerificationResult"]
