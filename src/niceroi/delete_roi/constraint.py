# niceroi/src/niceroi/delete_roi/constraint.py

"""One-time correction of a freshly created ROI into the canvas bounds.

A drag-time constraint only stops an ROI from being *moved* past the canvas
edge; it does nothing about an ROI that was *created* past it. This module
fixes that once, right after creation.
"""

from __future__ import annotations

from typing import Protocol, Tuple

from niceroi.roi_canvas.items import RectRoi, RoiPosition
from niceroi.utils.logging import get_logger

logger = get_logger(__name__)


class BoundsProvider(Protocol):
    def get_x_limits(self) -> Tuple[float, float]: ...

    def get_y_limits(self) -> Tuple[float, float]: ...


def correct_creation_position(roi: RectRoi, bounds: BoundsProvider) -> RoiPosition:
    """Pull every edge of `roi` that lies outside `bounds` back onto it.

    Violations are decided once, from the position at entry. Corrections are
    then applied left, right, top, bottom, each reading the position left by
    the previous one. Only the violated edge moves; the opposite edge keeps
    its absolute position. A side that lies entirely outside collapses to
    zero size on the bound.

    Returns:
        The ROI position after correction.
    """
    rp = roi.get_position()
    x_min, x_max = bounds.get_x_limits()
    y_min, y_max = bounds.get_y_limits()

    beyond_left = rp.x < x_min
    beyond_right = rp.right > x_max
    beyond_top = rp.y < y_min
    beyond_bottom = rp.bottom > y_max

    if not (beyond_left or beyond_right or beyond_top or beyond_bottom):
        return rp

    original = rp

    if beyond_left:
        roi.set_position(RoiPosition(x_min, rp.y, max(0.0, rp.width - (x_min - rp.x)), rp.height))
        rp = roi.get_position()

    if beyond_right:
        left = min(rp.x, x_max)
        roi.set_position(RoiPosition(left, rp.y, max(0.0, x_max - left), rp.height))
        rp = roi.get_position()

    if beyond_top:
        roi.set_position(RoiPosition(rp.x, y_min, rp.width, max(0.0, rp.height - (y_min - rp.y))))
        rp = roi.get_position()

    if beyond_bottom:
        top = min(rp.y, y_max)
        roi.set_position(RoiPosition(rp.x, top, rp.width, max(0.0, y_max - top)))
        rp = roi.get_position()

    logger.debug(
        f"corrected {roi!r} into bounds x={x_min, x_max} y={y_min, y_max}: "
        f"{original.as_tuple()} -> {rp.as_tuple()}"
    )
    return rp
