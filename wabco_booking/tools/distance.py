"""Great-circle distance for ranking branches against a visitor's location."""

import math
from typing import Iterable, Optional, TypeVar

EARTH_RADIUS: dict[str, float] = {
    "km": 6371.0088,
    "mi": 3958.7613,
}

T = TypeVar("T")


def calculate_distance(
    lat1: float, lng1: float, lat2: float, lng2: float, unit: str = "km"
) -> float:
    """Haversine distance between two coordinates, rounded to one decimal.

    Raises:
        ValueError: If ``unit`` is not ``"km"`` or ``"mi"``.
    """
    if unit not in EARTH_RADIUS:
        raise ValueError(f"Unknown distance unit {unit!r}; expected one of {list(EARTH_RADIUS)}")

    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS[unit] * c, 1)


def sort_by_distance(
    items: Iterable[T], lat: float, lng: float, unit: str = "km"
) -> list[tuple[T, Optional[float]]]:
    """Pair each item with its distance from (lat, lng), nearest first.

    Items need ``lat``/``lng`` attributes; those without coordinates sort
    last with a distance of None.
    """
    located: list[tuple[T, Optional[float]]] = []
    unlocated: list[tuple[T, Optional[float]]] = []
    for item in items:
        item_lat = getattr(item, "lat", None)
        item_lng = getattr(item, "lng", None)
        if item_lat is None or item_lng is None:
            unlocated.append((item, None))
            continue
        located.append((item, calculate_distance(lat, lng, float(item_lat), float(item_lng), unit)))
    located.sort(key=lambda pair: pair[1])
    return located + unlocated
