# niceroi/src/niceroi/delete_roi/add_roi.py

from __future__ import annotations

import dataclasses
from functools import partial
from typing import Optional

from niceroi.roi_canvas.canvas import RoiCanvas
from niceroi.roi_canvas.items import PositionLike, RectRoi, as_position, make_constrain_to_rect_fn
from niceroi.utils.logging import get_logger
from .affordance import DeleteAffordance, DeleteButtonConfig
from .callbacks import RoiLink, check_for_alt_click, reposition_affordance, resync, teardown
from .constraint import correct_creation_position

logger = get_logger(__name__)

# App-data key on the ROI holding its RoiLink.
LINK_KEY = "delete_roi_link"


def add_roi(
    canvas: RoiCanvas,
    position: Optional[PositionLike],
    *,
    x_offset: float | None = None,
    y_offset: float | None = None,
    constrain_drag: bool = True,
    button_config: DeleteButtonConfig | None = None,
    tag: str = "",
    color: str | None = None,
    fill_color: str | None = None,
) -> Optional[RectRoi]:
    """Create a rectangular ROI with a delete button on `canvas`.

    The ROI:
      - is pulled inside the canvas's visible extent if created past it,
      - is confined to that extent while dragged (unless constrain_drag=False),
      - cannot be deleted through its own context menu or the Delete key;
        only through its delete button or RectRoi.delete(), which both
        remove the ROI and the button together,
      - passes alternate (right) clicks on its interior through to the
        canvas image's click handler.

    Args:
        canvas: Canvas to draw on.
        position: (x, y, width, height), or None when the user aborted
            creation; then nothing is created and None is returned.
        x_offset, y_offset: Override the button offsets of `button_config`.
        constrain_drag: Install a drag constraint to the current bounds.
        button_config: Delete button look and placement.
        tag, color, fill_color: Passed to RectRoi.

    Returns:
        The new RectRoi, or None if `position` is None.
    """
    if position is None:
        logger.info("ROI creation aborted")
        return None

    roi = RectRoi(as_position(position), tag=tag, color=color, fill_color=fill_color)
    canvas.add_item(roi)

    # The fill belongs to check_for_alt_click; native deletion would orphan
    # the delete button.
    roi.fill_context_menu = []
    roi.deletable = False

    if constrain_drag:
        roi.set_position_constraint(
            make_constrain_to_rect_fn(canvas.get_x_limits(), canvas.get_y_limits())
        )

    correct_creation_position(roi, canvas)

    config = button_config if button_config is not None else DeleteButtonConfig()
    overrides = {}
    if x_offset is not None:
        overrides["x_offset"] = float(x_offset)
    if y_offset is not None:
        overrides["y_offset"] = float(y_offset)
    if overrides:
        config = dataclasses.replace(config, **overrides)

    affordance = DeleteAffordance(canvas, roi, config=config)
    link = RoiLink(
        roi=roi,
        affordance=affordance,
        canvas=canvas,
        offset=(config.x_offset, config.y_offset),
    )
    roi.set_app_data(LINK_KEY, link)

    reposition_affordance(link, roi.get_position())
    link.position_sub = roi.on_position_changed(partial(reposition_affordance, link))
    link.viewport_sub = canvas.on_viewport_changed(partial(resync, link))
    link.fill_sub = roi.add_fill_callback(partial(check_for_alt_click, link))

    roi.on_deleted(partial(teardown, link))
    roi.on_deleted(lambda _roi: affordance.delete_both())

    pos = roi.get_position()
    logger.info(
        f"Created ROI {roi.id}: x={pos.x:.1f}, y={pos.y:.1f}, "
        f"w={pos.width:.1f}, h={pos.height:.1f}, delete button {affordance.marker.id}"
    )
    return roi


async def draw_roi(canvas: RoiCanvas, **options) -> Optional[RectRoi]:
    """Let the user drag out a rectangle, then add_roi() it.

    Returns None, with nothing created, if the user aborts the drawing.
    """
    position = await canvas.draw_rect()
    return add_roi(canvas, position, **options)


def get_link(roi: RectRoi) -> Optional[RoiLink]:
    return roi.get_app_data(LINK_KEY)


def get_delete_affordance(roi: RectRoi) -> Optional[DeleteAffordance]:
    """The delete button created for `roi` by add_roi(), if any."""
    link = get_link(roi)
    return link.affordance if link is not None else None
