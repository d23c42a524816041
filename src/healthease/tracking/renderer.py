# renderer.py
# Draws the map state into a BGR numpy image with OpenCV.
# Pure with respect to MapState: reads objects, never mutates them.

from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from .icon_cache import IconCache
from .map_state import MapState
from .models import BoundingBox, MapObject, ObjectKind
from .projector import latlng_to_xy, project_path
from .sim_config import SimConfig


# BGR colours
BACKGROUND = (255, 251, 246)          # #f6fbff
GRID = (230, 220, 200)
AMBULANCE_TRAIL = (67, 67, 224)       # rgba(224,67,67)
DELIVERY_TRAIL = (0, 152, 255)        # rgba(255,152,0)
LABEL = (39, 32, 16)                  # #102027
OVERLAY_BG = (255, 255, 255)


def hex_to_bgr(color: str) -> Tuple[int, int, int]:
    """'#1976d2' → (210, 118, 25)."""
    c = color.lstrip("#")
    if len(c) == 3:
        c = "".join(ch * 2 for ch in c)
    r, g, b = int(c[0:2], 16), int(c[2:4], 16), int(c[4:6], 16)
    return b, g, r


def object_label(obj: MapObject) -> str:
    if obj.kind == ObjectKind.USER:
        return "You"
    if obj.kind == ObjectKind.AMBULANCE:
        return obj.label or obj.id.replace("amb_", "", 1)
    if obj.kind == ObjectKind.DELIVERY:
        return "Delivery"
    if obj.kind == ObjectKind.PHARMACY:
        return "Shop"
    return ""


class Renderer:
    """
    Redraws the whole canvas on every call.

    Args:
        config:     SimConfig for canvas size, icon sizes and offsets.
        icon_cache: Optional IconCache; without one every icon is a dot.
    """

    def __init__(self, config: Optional[SimConfig] = None, icon_cache: Optional[IconCache] = None) -> None:
        self.config = config or SimConfig()
        self.icon_cache = icon_cache

    def render(
        self,
        map_state: MapState,
        bounds: Optional[BoundingBox] = None,
        canvas_size: Optional[Tuple[int, int]] = None,
        status_lines: Optional[Sequence[str]] = None,
    ) -> np.ndarray:
        """
        Draw grid, trails, markers, labels and the summary overlay.

        Args:
            map_state:    Registry to draw.
            bounds:       Projection bounds; defaults to map_state.bounds.
            canvas_size:  (width, height); defaults to config.canvas_size.
            status_lines: Optional overlay text, one entry per line.

        Returns:
            (height, width, 3) uint8 BGR image.
        """
        w, h = canvas_size or self.config.canvas_size
        b = bounds or map_state.bounds
        canvas = np.empty((h, w, 3), dtype=np.uint8)
        canvas[:] = BACKGROUND

        self._draw_grid(canvas)
        objects = list(map_state)

        # Trails below icons
        for obj in objects:
            if len(obj.trail) > 1:
                pts = project_path(obj.trail, b, w, h)
                if obj.kind == ObjectKind.AMBULANCE:
                    cv2.polylines(canvas, [pts], False, AMBULANCE_TRAIL, 3, cv2.LINE_AA)
                else:
                    cv2.polylines(canvas, [pts], False, DELIVERY_TRAIL, 2, cv2.LINE_AA)

        for obj in objects:
            x, y = latlng_to_xy(obj.position.lat, obj.position.lng, b, w, h)
            cx, cy = int(round(x)), int(round(y))
            icon = self.icon_cache.get(obj.icon) if (obj.icon and self.icon_cache) else None
            if icon is not None:
                size = (self.config.vehicle_icon_px
                        if obj.kind in (ObjectKind.AMBULANCE, ObjectKind.DELIVERY)
                        else self.config.marker_icon_px)
                _paste_icon(canvas, icon, cx - size // 2, cy - size // 2, size)
            else:
                cv2.circle(canvas, (cx, cy), self.config.dot_radius_px,
                           hex_to_bgr(obj.color), -1, cv2.LINE_AA)

            label = object_label(obj)
            if label:
                dx, dy = self.config.label_offset_px
                cv2.putText(canvas, label, (cx + dx, cy + dy),
                            cv2.FONT_HERSHEY_SIMPLEX, 0.4, LABEL, 1, cv2.LINE_AA)

        if status_lines:
            self._draw_overlay(canvas, list(status_lines))
        return canvas

    def save(self, image: np.ndarray, path: str) -> bool:
        return bool(cv2.imwrite(path, image))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _draw_grid(self, canvas: np.ndarray) -> None:
        h, w = canvas.shape[:2]
        n = self.config.grid_divisions
        for i in range(1, n):
            x = int(w / n * i)
            cv2.line(canvas, (x, 0), (x, h), GRID, 1)
        for j in range(1, n):
            y = int(h / n * j)
            cv2.line(canvas, (0, y), (w, y), GRID, 1)

    def _draw_overlay(self, canvas: np.ndarray, lines: List[str]) -> None:
        line_h = 18
        box_h = line_h * len(lines) + 10
        box_w = min(canvas.shape[1] - 10, 10 + 7 * max(len(s) for s in lines))
        region = canvas[5:5 + box_h, 5:5 + box_w]
        overlay = np.full_like(region, OVERLAY_BG)
        region[:] = cv2.addWeighted(overlay, 0.8, region, 0.2, 0)
        for i, text in enumerate(lines):
            # Hershey fonts are ASCII only
            ascii_text = text.replace("—", "-").encode("ascii", "replace").decode("ascii")
            cv2.putText(canvas, ascii_text, (10, 5 + line_h * (i + 1)),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.45, LABEL, 1, cv2.LINE_AA)


def _paste_icon(canvas: np.ndarray, icon: np.ndarray, x0: int, y0: int, size: int) -> None:
    """Alpha-blend a resized icon onto canvas, clipping at the edges."""
    img = cv2.resize(icon, (size, size), interpolation=cv2.INTER_AREA)
    h, w = canvas.shape[:2]
    x1, y1 = max(x0, 0), max(y0, 0)
    x2, y2 = min(x0 + size, w), min(y0 + size, h)
    if x1 >= x2 or y1 >= y2:
        return
    crop = img[y1 - y0:y2 - y0, x1 - x0:x2 - x0]
    region = canvas[y1:y2, x1:x2]
    if crop.shape[2] == 4:
        alpha = crop[:, :, 3:4].astype(np.float32) / 255.0
        blended = crop[:, :, :3].astype(np.float32) * alpha + region.astype(np.float32) * (1 - alpha)
        region[:] = blended.astype(np.uint8)
    else:
        region[:] = crop[:, :, :3]
