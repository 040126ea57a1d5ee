"""Rectangular ROIs with a delete button, creation-time bounds correction and
right-click pass-through to the underlying image."""

from .add_roi import add_roi, draw_roi, get_delete_affordance
from .affordance import (
    DELETE_BUTTON_TAG,
    POSITION_KEY,
    DeleteAffordance,
    DeleteButtonConfig,
    find_delete_buttons,
    roi_positions,
)
from .callbacks import RoiLink
from .constraint import correct_creation_position

__all__ = [
    "DELETE_BUTTON_TAG",
    "POSITION_KEY",
    "DeleteAffordance",
    "DeleteButtonConfig",
    "RoiLink",
    "add_roi",
    "correct_creation_position",
    "draw_roi",
    "find_delete_buttons",
    "get_delete_affordance",
    "roi_positions",
]
