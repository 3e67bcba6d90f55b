"""GPS verification service."""
import math
from dataclasses import dataclass
from typing import Dict, Optional

from intrack.utils.validators import ValidationError, Validator

EARTH_RADIUS_METERS = 6371000


@dataclass(frozen=True)
class LocationValidation:
    distance_meters: Optional[float]
    is_within_radius: bool
    message: str
    allowed_radius_meters: Optional[int] = None


class GPSService:
    """Service for GPS and location verification.

    Reported device accuracy is stored on the attendance record for audit only.
    It never widens the allowed radius: a position is accepted iff its
    great-circle distance is <= the visit radius.
    """

    @staticmethod
    def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Calculate distance between two GPS points in meters (haversine)."""
        for lat, lng in ((lat1, lon1), (lat2, lon2)):
            result = Validator.validate_coordinates(lat, lng)
            if not result['is_valid']:
                raise ValidationError("Invalid coordinates", result['errors'])

        lat1_rad = math.radians(lat1)
        lat2_rad = math.radians(lat2)
        delta_lat = math.radians(lat2 - lat1)
        delta_lon = math.radians(lon2 - lon1)

        a = (math.sin(delta_lat / 2) ** 2 +
             math.cos(lat1_rad) * math.cos(lat2_rad) *
             math.sin(delta_lon / 2) ** 2)
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

        return EARTH_RADIUS_METERS * c

    @staticmethod
    def distance_meters(a: Dict, b: Dict) -> float:
        """Distance between two ``{'lat', 'lng'}`` points."""
        return GPSService.calculate_distance(a['lat'], a['lng'], b['lat'], b['lng'])

    @staticmethod
    def validate(visit, position: Dict) -> LocationValidation:
        """Classify a reported position against the visit's allowed radius.

        Fails closed when the visit has no location. Raises ValidationError
        for out-of-range coordinates, whether or not the visit has a location.
        """
        result = Validator.validate_coordinates(position.get('lat'), position.get('lng'))
        if not result['is_valid']:
            raise ValidationError("Invalid coordinates", result['errors'])

        if not visit.has_location:
            return LocationValidation(
                distance_meters=None,
                is_within_radius=False,
                message='Visit location not available'
            )

        distance = GPSService.distance_meters(
            position,
            {'lat': visit.latitude, 'lng': visit.longitude}
        )
        radius = visit.radius_meters
        is_within = distance <= radius

        if is_within:
            message = 'Location verified'
        else:
            message = f'Location {round(distance)}m away from visit location (max: {radius}m)'

        return LocationValidation(
            distance_meters=round(distance, 2),
            is_within_radius=is_within,
            message=message,
            allowed_radius_meters=radius
        )
