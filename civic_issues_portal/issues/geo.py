import json
from typing import NamedTuple

from django.core.exceptions import ValidationError


class GeoPoint(NamedTuple):
    longitude: float
    latitude: float

    def as_geojson(self) -> dict:
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_location(raw) -> GeoPoint:
    """
    Turn any accepted location payload into a ``GeoPoint``.

    Accepted shapes, optionally JSON-encoded as a string (multipart forms
    can only carry strings):

    * GeoJSON ``{"type": "Point", "coordinates": [lng, lat]}``
    * ``{"lng": lng, "lat": lat}``

    Coordinates must be numbers, not numeric strings.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValidationError("Invalid location data format.") from exc

    if not isinstance(raw, dict):
        raise ValidationError("Invalid location data format.")

    if "coordinates" in raw or "type" in raw:
        coordinates = raw.get("coordinates")
        if raw.get("type") != "Point" or not isinstance(coordinates, (list, tuple)) or len(coordinates) != 2:
            raise ValidationError("Invalid location format. Must be a GeoJSON Point.")
        lng, lat = coordinates
    elif "lng" in raw and "lat" in raw:
        lng, lat = raw["lng"], raw["lat"]
    else:
        raise ValidationError("Invalid location format. Must be a GeoJSON Point.")

    if not (_is_number(lng) and _is_number(lat)) or not (-180 <= lng <= 180 and -90 <= lat <= 90):
        raise ValidationError(
            "Invalid coordinates. Longitude must be between -180 and 180, latitude between -90 and 90."
        )
    return GeoPoint(float(lng), float(lat))
