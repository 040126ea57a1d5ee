# niceroi/src/niceroi/delete_roi/callbacks.py

"""Standing callbacks that tie an ROI to its delete button.

Each callback receives a RoiLink explicitly (bound with functools.partial by
add_roi) instead of closing over the ROI, button and canvas.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from niceroi.roi_canvas.canvas import RoiCanvas
from niceroi.roi_canvas.items import CanvasItem, ClickEvent, RectRoi, RoiPosition
from niceroi.utils.logging import get_logger
from .affordance import DeleteAffordance

logger = get_logger(__name__)


@dataclass
class RoiLink:
    """Everything the synchronizer and click forwarder need about one ROI."""

    roi: RectRoi
    affordance: DeleteAffordance
    canvas: RoiCanvas
    offset: Tuple[float, float] = (0.0, 0.0)

    # subscription handles, released by teardown()
    position_sub: Optional[int] = None
    viewport_sub: Optional[int] = None
    fill_sub: Optional[int] = None

    @property
    def is_torn_down(self) -> bool:
        return self.roi.is_deleted or self.affordance.is_deleted


def affordance_anchor(link: RoiLink, pos: RoiPosition) -> Tuple[float, float]:
    """Delete-button position for an ROI at `pos`: top-right corner plus offset."""
    x_offset, y_offset = link.offset
    return pos.right + x_offset, pos.y + y_offset


def reposition_affordance(link: RoiLink, new_pos: RoiPosition) -> None:
    """Position-changed callback: keep the delete button in step with the ROI.

    The button is hidden whenever its position falls outside the canvas's
    current limits. The cached position is refreshed from the live ROI.
    """
    if link.is_torn_down:
        return

    ax, ay = affordance_anchor(link, new_pos)
    x_min, x_max = link.canvas.get_x_limits()
    y_min, y_max = link.canvas.get_y_limits()
    visible = x_min <= ax <= x_max and y_min <= ay <= y_max

    link.affordance.move_to(ax, ay, visible=visible)
    link.affordance.cache_position(link.roi.get_position())


def resync(link: RoiLink, _viewport: dict | None = None) -> None:
    """Viewport-changed callback: bounds moved, recompute visibility."""
    if link.is_torn_down:
        return
    reposition_affordance(link, link.roi.get_position())


def check_for_alt_click(link: RoiLink, _src: CanvasItem, event: ClickEvent) -> None:
    """Fill button-down callback: pass alternate clicks through to the image.

    Forwarding only happens when the canvas holds exactly one image; the
    image's click handler is called with no arguments and any failure in it
    is logged and dropped.
    """
    if event.selection_type != "alt":
        return

    images = link.canvas.images()
    if len(images) != 1:
        logger.debug(f"alt click on {link.roi!r}: {len(images)} images, not forwarding")
        return

    handler = images[0].button_down_fcn
    if handler is None:
        return
    try:
        handler()
    except Exception:
        logger.exception(f"Error in image click handler forwarded from {link.roi!r}")


def teardown(link: RoiLink, _roi: CanvasItem | None = None) -> None:
    """Release every subscription held for `link`."""
    link.roi.remove_position_callback(link.position_sub)
    link.roi.remove_fill_callback(link.fill_sub)
    link.canvas.remove_viewport_callback(link.viewport_sub)
    link.position_sub = link.viewport_sub = link.fill_sub = None
