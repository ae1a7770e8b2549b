"""
Geographic input parsing

A client location is stored as one string:
  "lat,lng"           decimal coordinates
  "pluscode:<CODE>"   an Open Location Code, never converted to lat/lng;
                      a short code keeps its locality ("pluscode:9G8F+5W Milagro")
  ""                  nothing given
"""
import math
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple
from urllib.parse import quote

from geopy.distance import geodesic

from .exceptions import InvalidLocation

PLUS_CODE_PREFIX = "pluscode:"
FULL_PLUS_CODE_DIGITS = 8

_NUMBER = r"(-?\d+(?:\.\d+)?)"
_MAPS_PATTERNS = (
    re.compile(r"[?&]q=" + _NUMBER + r",\s*" + _NUMBER),
    re.compile(r"/place/" + _NUMBER + r",\s*" + _NUMBER),
    re.compile(r"@" + _NUMBER + r",\s*" + _NUMBER),
)
_PLUS_CODE_EXACT = re.compile(r"^[A-Za-z0-9]{3,}\+[A-Za-z0-9]{2,}$")
_PLUS_CODE_SEARCH = re.compile(r"(?<![A-Za-z0-9+])([A-Za-z0-9]{3,}\+[A-Za-z0-9]{2,})(?![A-Za-z0-9+])")
_DIGITS = re.compile(r"^\d+$")

# Minus-like characters pasted from maps apps and word processors
_MINUS_SIGNS = str.maketrans({"−": "-", "–": "-", "—": "-"})

COURIER_SPEED_KMH = 15
HANDOFF_MINUTES = 5


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def serialize(self) -> str:
        return f"{self.lat!r},{self.lng!r}"


@dataclass(frozen=True)
class ParsedLocation:
    """Result of parsing raw operator input"""
    kind: str  # "coordinates" | "plus_code" | "empty"
    value: str
    coordinates: Optional[Coordinates] = None
    plus_code: Optional[str] = None
    locality: Optional[str] = None


def is_valid_range(lat: float, lng: float) -> bool:
    return -90 <= lat <= 90 and -180 <= lng <= 180


def validate_coordinates(text: str) -> bool:
    """True when the text parses as decimal coordinates inside the valid ranges"""
    try:
        parse_coordinates(text)
    except InvalidLocation:
        return False
    return True


def _to_pair(lat_text: str, lng_text: str) -> Coordinates:
    try:
        lat, lng = float(lat_text), float(lng_text)
    except ValueError:
        raise InvalidLocation(f"Coordenadas inválidas: {lat_text},{lng_text}")
    if math.isnan(lat) or math.isnan(lng) or not is_valid_range(lat, lng):
        raise InvalidLocation(f"Coordenadas fuera de rango: {lat},{lng}")
    return Coordinates(lat, lng)


def parse_coordinates(text: str) -> Coordinates:
    """
    Parse decimal coordinates, accepting comma as decimal separator.

    1 comma:  "-1.8732619, -79.9795561"
    3 commas: "-1,8732619, -79,9795561"  (decimal comma on both numbers)
    2 commas: ambiguous, whitespace is stripped and the split giving a
              valid pair with a digits-only fraction wins
    """
    if not text or not text.strip():
        raise InvalidLocation("Coordenadas vacías")

    cleaned = text.strip().translate(_MINUS_SIGNS)
    parts = cleaned.split(",")
    commas = len(parts) - 1

    if commas == 1:
        return _to_pair(parts[0].strip(), parts[1].strip())

    if commas == 3:
        lat_text = f"{parts[0].strip()}.{parts[1].strip()}"
        lng_text = f"{parts[2].strip()}.{parts[3].strip()}"
        return _to_pair(lat_text, lng_text)

    if commas == 2:
        a, b, c = (re.sub(r"\s+", "", part) for part in parts)
        attempts = []
        if _DIGITS.match(b):
            attempts.append((f"{a}.{b}", c))
        if _DIGITS.match(c):
            attempts.append((a, f"{b}.{c}"))
        for lat_text, lng_text in attempts:
            try:
                return _to_pair(lat_text, lng_text)
            except InvalidLocation:
                continue
        raise InvalidLocation(f"Coordenadas ambiguas: {text}")

    raise InvalidLocation(f"Formato de coordenadas no reconocido: {text}")


def extract_coordinates_from_maps_url(link: str) -> Optional[Coordinates]:
    """Pull lat/lng out of a Google Maps link: ?q= first, then /place/, then @"""
    if not link:
        return None
    for pattern in _MAPS_PATTERNS:
        match = pattern.search(link)
        if match:
            try:
                return _to_pair(match.group(1), match.group(2))
            except InvalidLocation:
                return None
    return None


def is_maps_url(text: str) -> bool:
    lowered = (text or "").strip().lower()
    return lowered.startswith(("http://", "https://")) or "google." in lowered or "maps.app" in lowered


def is_plus_code(text: str) -> bool:
    return bool(_PLUS_CODE_EXACT.match((text or "").strip()))


def extract_plus_code(text: str) -> Optional[str]:
    """First Plus Code found inside free text, e.g. '8FVC9G8F+5W reference text' -> '8FVC9G8F+5W'"""
    match = _PLUS_CODE_SEARCH.search(text or "")
    return match.group(1).upper() if match else None


def is_short_plus_code(code: str) -> bool:
    """A short code ('9G8F+5W') only resolves next to a locality"""
    return len(code.split("+", 1)[0]) < FULL_PLUS_CODE_DIGITS


def _locality_around(text: str, code: str) -> Optional[str]:
    start = text.upper().find(code)
    if start < 0:
        return None
    rest = f"{text[:start]} {text[start + len(code):]}"
    return re.sub(r"\s+", " ", rest).strip(" ,;") or None


def parse_location_input(raw: str) -> ParsedLocation:
    """Classify raw input as a maps link, a Plus Code or decimal coordinates"""
    text = (raw or "").strip()
    if not text:
        return ParsedLocation(kind="empty", value="")

    if text.startswith(PLUS_CODE_PREFIX):
        text = text[len(PLUS_CODE_PREFIX):]

    if is_maps_url(text):
        coordinates = extract_coordinates_from_maps_url(text)
        if coordinates is None:
            raise InvalidLocation("No se encontraron coordenadas en el enlace de Google Maps")
        return ParsedLocation(kind="coordinates", value=coordinates.serialize(), coordinates=coordinates)

    if "+" in text:
        code = text.upper() if is_plus_code(text) else extract_plus_code(text)
        if code:
            locality = _locality_around(text, code) if is_short_plus_code(code) else None
            value = PLUS_CODE_PREFIX + code + (f" {locality}" if locality else "")
            return ParsedLocation(kind="plus_code", value=value, plus_code=code, locality=locality)

    coordinates = parse_coordinates(text)
    return ParsedLocation(kind="coordinates", value=coordinates.serialize(), coordinates=coordinates)


def coordinates_from_stored(value: str) -> Optional[Coordinates]:
    """lat/lng of a stored location string, None for Plus Codes, empty or broken values"""
    if not value or value.startswith(PLUS_CODE_PREFIX):
        return None
    try:
        return parse_coordinates(value)
    except InvalidLocation:
        return None


def maps_link(value: str) -> Optional[str]:
    """Google Maps link for a stored location string"""
    if not value:
        return None
    if value.startswith(PLUS_CODE_PREFIX):
        return f"https://www.google.com/maps/place/{quote(value[len(PLUS_CODE_PREFIX):])}"
    return f"https://www.google.com/maps/place/{value}"


def is_point_in_polygon(point: Coordinates, polygon: Sequence[Tuple[float, float]]) -> bool:
    """Ray casting; polygon vertices are (lat, lng)"""
    inside = False
    x, y = point.lng, point.lat
    j = len(polygon) - 1
    for i in range(len(polygon)):
        yi, xi = polygon[i]
        yj, xj = polygon[j]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def distance_km(origin: Coordinates, destination: Coordinates) -> float:
    """Geodesic distance between two points in km"""
    return geodesic((origin.lat, origin.lng), (destination.lat, destination.lng)).kilometers


def estimate_delivery_minutes(origin: Coordinates, destination: Coordinates) -> int:
    """Courier ETA: straight-line distance at city speed plus a fixed handoff margin"""
    minutes = math.ceil(distance_km(origin, destination) / COURIER_SPEED_KMH * 60)
    return minutes + HANDOFF_MINUTES
