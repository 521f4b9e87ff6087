import math
import re
from typing import Optional

from schemas import Coordinate

# "40.7128, -74.0060": optional minus, 1-3 ASCII integer digits, optional fraction
COORDINATE_PATTERN = re.compile(r"(-?\d{1,3}(?:\.\d+)?)\s*,\s*(-?\d{1,3}(?:\.\d+)?)", re.ASCII)


def parse_coordinates(text: Optional[str]) -> Optional[Coordinate]:
    """Parse 'lat, lon' text into a Coordinate, or None if it is not a valid pair.

    None means "keep the current input and do nothing"; no error is raised here.
    """
    if not text:
        return None
    match = COORDINATE_PATTERN.fullmatch(text.strip())
    if not match:
        return None
    try:
        lat = float(match.group(1))
        lon = float(match.group(2))
    except ValueError:
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    if lat < -90 or lat > 90 or lon < -180 or lon > 180:
        return None
    return Coordinate(latitude=lat, longitude=lon)
