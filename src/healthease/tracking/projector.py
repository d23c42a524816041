# projector.py
# Geographic bounding box and lat/lng → pixel projection for a fixed canvas.

from typing import Iterable, Optional, Tuple

import numpy as np
from shapely.geometry import MultiPoint

from .models import BoundingBox, LatLng
from .sim_config import SimConfig


def compute_bounds(
    points: Iterable[LatLng],
    config: Optional[SimConfig] = None,
) -> BoundingBox:
    """
    Padded extent of the given points.

    Padding on each axis is ``span * pad_ratio + pad_constant_deg``. With no
    points the configured default region is returned.
    """
    config = config or SimConfig()
    coords = [(p.lng, p.lat) for p in points]
    if not coords:
        min_lat, max_lat, min_lng, max_lng = config.default_region
        return BoundingBox(min_lat, max_lat, min_lng, max_lng)

    min_lng, min_lat, max_lng, max_lat = MultiPoint(coords).bounds
    lat_pad = (max_lat - min_lat) * config.pad_ratio + config.pad_constant_deg
    lng_pad = (max_lng - min_lng) * config.pad_ratio + config.pad_constant_deg
    return BoundingBox(
        min_lat=min_lat - lat_pad,
        max_lat=max_lat + lat_pad,
        min_lng=min_lng - lng_pad,
        max_lng=max_lng + lng_pad,
    )


def latlng_to_xy(
    lat: float, lng: float, bounds: BoundingBox, width: float, height: float
) -> Tuple[float, float]:
    """Project one point; north is up, so y grows as latitude falls."""
    lng_span = (bounds.max_lng - bounds.min_lng) or 1.0
    lat_span = (bounds.max_lat - bounds.min_lat) or 1.0
    x = (lng - bounds.min_lng) / lng_span * width
    y = (bounds.max_lat - lat) / lat_span * height
    return x, y


def project_path(
    points: Iterable[LatLng], bounds: BoundingBox, width: int, height: int
) -> np.ndarray:
    """Project a sequence of points into an (N, 2) int32 pixel array for cv2."""
    arr = np.array([(p.lng, p.lat) for p in points], dtype=np.float64).reshape(-1, 2)
    if arr.size == 0:
        return np.zeros((0, 2), dtype=np.int32)
    lng_span = (bounds.max_lng - bounds.min_lng) or 1.0
    lat_span = (bounds.max_lat - bounds.min_lat) or 1.0
    xs = (arr[:, 0] - bounds.min_lng) / lng_span * width
    ys = (bounds.max_lat - arr[:, 1]) / lat_span * height
    return np.round(np.stack([xs, ys], axis=1)).astype(np.int32)
