# niceroi/src/niceroi/delete_roi/affordance.py

from __future__ import annotations

import weakref
from dataclasses import dataclass
from typing import Dict, List, Optional

from niceroi.roi_canvas.canvas import RoiCanvas
from niceroi.roi_canvas.items import CanvasItem, CanvasText, ClickEvent, RectRoi, RoiPosition
from niceroi.utils.logging import get_logger

logger = get_logger(__name__)

# Shared tag of every delete button on a canvas.
DELETE_BUTTON_TAG = "delete_button"

# App-data key holding the last known position of the button's ROI.
POSITION_KEY = "this_position"


@dataclass
class DeleteButtonConfig:
    """Placement and look of the delete button.

    The button sits at (roi.x + roi.width + x_offset, roi.y + y_offset).
    """

    x_offset: float = 0.0
    y_offset: float = 0.0
    text: str = "X"
    color: str = "white"
    edge_color: str = "white"
    background_color: str = "#b30000"
    font_size: float = 10.0
    font_weight: str = "bold"
    tag: str = DELETE_BUTTON_TAG


class DeleteAffordance:
    """Clickable "X" marker that deletes itself together with its ROI.

    The marker is a CanvasText kept above all other canvas content. It caches
    the ROI position as app data, so code holding only the marker (e.g. from
    find_delete_buttons) can still read the geometry after the ROI is gone.
    """

    def __init__(
        self,
        canvas: RoiCanvas,
        roi: RectRoi,
        *,
        config: DeleteButtonConfig | None = None,
    ) -> None:
        self.config = config if config is not None else DeleteButtonConfig()
        self.canvas = canvas
        self._roi_ref = weakref.ref(roi)
        self._torn_down = False

        pos = roi.get_position()
        self.marker = CanvasText(
            pos.right + self.config.x_offset,
            pos.y + self.config.y_offset,
            self.config.text,
            color=self.config.color,
            background_color=self.config.background_color,
            edge_color=self.config.edge_color,
            font_size=self.config.font_size,
            font_weight=self.config.font_weight,
            tag=self.config.tag,
            stay_on_top=True,
        )
        self.marker.set_app_data(POSITION_KEY, pos)
        canvas.add_item(self.marker)
        canvas.bring_to_front(self.marker)

        self.marker.add_button_down_callback(self.activate)
        # Removing the marker by any route takes the ROI with it.
        self.marker.on_deleted(lambda _marker: self.delete_both())

    def __repr__(self) -> str:
        return f"DeleteAffordance(marker={self.marker.id!r}, roi={getattr(self.roi, 'id', None)!r})"

    @property
    def roi(self) -> Optional[RectRoi]:
        return self._roi_ref()

    @property
    def is_deleted(self) -> bool:
        return self._torn_down or self.marker.is_deleted

    @property
    def position(self) -> tuple[float, float]:
        return self.marker.x, self.marker.y

    @property
    def visible(self) -> bool:
        return self.marker.visible

    @property
    def cached_position(self) -> Optional[RoiPosition]:
        """Last known ROI position; still readable after deletion."""
        return self.marker.get_app_data(POSITION_KEY)

    def move_to(self, x: float, y: float, *, visible: bool) -> None:
        self.marker.set_anchor(x, y)
        self.marker.visible = visible

    def cache_position(self, position: RoiPosition) -> None:
        self.marker.set_app_data(POSITION_KEY, position)

    def activate(self, _src: CanvasItem | None = None, _event: ClickEvent | None = None) -> None:
        """Button-down handler of the marker."""
        logger.info(f"delete button clicked: {self!r}")
        self.delete_both()

    def delete_both(self) -> None:
        """Remove the marker, then delete the ROI. Safe to call repeatedly."""
        if self._torn_down:
            return
        self._torn_down = True
        self.marker.delete()
        roi = self.roi
        if roi is not None and not roi.is_deleted:
            roi.delete()
        logger.debug(f"deleted ROI and delete button: {self!r}")


def find_delete_buttons(canvas: RoiCanvas, tag: str = DELETE_BUTTON_TAG) -> List[CanvasText]:
    """All delete-button markers on `canvas`, bottom first."""
    return [it for it in canvas.find_by_tag(tag) if isinstance(it, CanvasText)]


def roi_positions(canvas: RoiCanvas, tag: str = DELETE_BUTTON_TAG) -> Dict[str, RoiPosition]:
    """Map delete-button id -> cached ROI position, for every button on `canvas`.

    Lets callers inspect every ROI's geometry without holding ROI handles.
    """
    positions: Dict[str, RoiPosition] = {}
    for marker in find_delete_buttons(canvas, tag):
        pos = marker.get_app_data(POSITION_KEY)
        if pos is not None:
            positions[marker.id] = pos
    return positions
