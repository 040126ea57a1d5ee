# niceroi/src/niceroi/roi_canvas/viewport.py

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Tuple


def _scale_about(lo: float, hi: float, center: float, factor: float) -> Tuple[float, float]:
    return center + (lo - center) * factor, center + (hi - center) * factor


def _shift_inside(lo: float, hi: float, limit: float) -> Tuple[float, float]:
    """Shift [lo, hi] back inside [0, limit] without changing its length."""
    if lo < 0.0:
        hi -= lo
        lo = 0.0
    if hi > limit:
        lo -= hi - limit
        hi = limit
    return lo, hi


@dataclass
class Viewport:
    """Currently visible region of a canvas, in full-image coordinates.

    The viewport is the canvas's visible extent: its x/y limits are what ROI
    constraints and delete-button visibility are measured against.
    """

    img_width: int
    img_height: int
    x_min: float = 0.0
    x_max: float = 0.0
    y_min: float = 0.0
    y_max: float = 0.0

    def __post_init__(self) -> None:
        # x_max == y_max == 0 means "show the full image"
        if self.x_max == 0.0 and self.y_max == 0.0:
            self.reset()
        else:
            self._clamp_to_image()

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min

    @property
    def x_limits(self) -> Tuple[float, float]:
        return self.x_min, self.x_max

    @property
    def y_limits(self) -> Tuple[float, float]:
        return self.y_min, self.y_max

    def is_full_view(self) -> bool:
        return (
            abs(self.width - float(self.img_width)) < 1e-6
            and abs(self.height - float(self.img_height)) < 1e-6
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Viewport":
        return cls(**data)

    # ------------------ core operations ------------------

    def reset(self) -> None:
        """Show full image."""
        self.x_min, self.x_max = 0.0, float(self.img_width)
        self.y_min, self.y_max = 0.0, float(self.img_height)

    def zoom_around(
        self,
        x_center: float,
        y_center: float,
        factor_x: float,
        factor_y: float,
        min_width: float = 10.0,
        min_height: float = 5.0,
    ) -> None:
        """Zoom around (x_center, y_center).

        factor < 1 -> zoom in
        factor > 1 -> zoom out
        """
        self.x_min, self.x_max = _scale_about(self.x_min, self.x_max, x_center, factor_x)
        self.y_min, self.y_max = _scale_about(self.y_min, self.y_max, y_center, factor_y)
        self._clamp_to_image()

        if self.width < min_width:
            cx = 0.5 * (self.x_min + self.x_max)
            self.x_min, self.x_max = cx - min_width / 2.0, cx + min_width / 2.0
        if self.height < min_height:
            cy = 0.5 * (self.y_min + self.y_max)
            self.y_min, self.y_max = cy - min_height / 2.0, cy + min_height / 2.0
        self._clamp_to_image()

    def pan(self, dx: float, dy: float) -> None:
        """Pan the viewport by the given deltas in full-image coordinates.

        Args:
            dx: Delta in X (positive moves the visible window left).
            dy: Delta in Y (positive moves the visible window up).

        Notes:
            Panning is clamped so the viewport never leaves the image,
            **while preserving the current width and height**.
        """
        self.x_min, self.x_max = _shift_inside(
            self.x_min - dx, self.x_max - dx, float(self.img_width)
        )
        self.y_min, self.y_max = _shift_inside(
            self.y_min - dy, self.y_max - dy, float(self.img_height)
        )
        if self.width > float(self.img_width) or self.height > float(self.img_height):
            self.reset()

    def get_int_slice(self) -> Tuple[int, int, int, int]:
        """Return (y_min, y_max, x_min, x_max) as ints, clamped."""

        def _clip(v: float, limit: int) -> int:
            return max(0, min(limit, int(round(v))))

        return (
            _clip(self.y_min, self.img_height),
            _clip(self.y_max, self.img_height),
            _clip(self.x_min, self.img_width),
            _clip(self.x_max, self.img_width),
        )

    # ------------------ internal helpers ------------------

    def _clamp_to_image(self) -> None:
        """Clamp edges into the image; a degenerate viewport falls back to full view."""
        w = float(self.img_width)
        h = float(self.img_height)
        self.x_min = max(0.0, min(w, self.x_min))
        self.x_max = max(0.0, min(w, self.x_max))
        self.y_min = max(0.0, min(h, self.y_min))
        self.y_max = max(0.0, min(h, self.y_max))

        if self.x_max <= self.x_min or self.y_max <= self.y_min:
            self.reset()


def full_to_view(
    x: float,
    y: float,
    viewport: Viewport,
    disp_w: int,
    disp_h: int,
) -> tuple[float, float]:
    """Full-image coords -> display coords."""
    if viewport.width <= 0 or viewport.height <= 0:
        return 0.0, 0.0
    vx = (x - viewport.x_min) / viewport.width * disp_w
    vy = (y - viewport.y_min) / viewport.height * disp_h
    return vx, vy


def view_to_full(
    vx: float,
    vy: float,
    viewport: Viewport,
    disp_w: int,
    disp_h: int,
) -> tuple[float, float]:
    """Display coords -> full-image coords."""
    if viewport.width <= 0 or viewport.height <= 0:
        return viewport.x_min, viewport.y_min
    x = viewport.x_min + (vx / disp_w) * viewport.width
    y = viewport.y_min + (vy / disp_h) * viewport.height
    return x, y
