# niceroi/src/niceroi/roi_canvas/items.py

"""Items that live on a RoiCanvas.

A canvas holds its items in paint order. Every item carries a tag, a
visibility flag, a small application-data store and a list of button-down
callbacks. Three concrete kinds exist:

- CanvasImage: displayable image content with its own click handler.
- CanvasText: a small text marker anchored at a point.
- RectRoi: an axis-aligned, draggable/resizable rectangle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence, Tuple, TypedDict, Union

import numpy as np

from niceroi.utils.logging import get_logger

if TYPE_CHECKING:
    from .canvas import RoiCanvas

logger = get_logger(__name__)


class RoiDict(TypedDict):
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class RoiPosition:
    """Rectangle position (x, y, width, height) in full-image coordinates."""

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"RoiPosition width/height must be >= 0, got {self.width}x{self.height}"
            )

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height

    def to_dict(self) -> RoiDict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_sequence(cls, seq: Sequence[float]) -> "RoiPosition":
        if len(seq) != 4:
            raise ValueError(f"Expected (x, y, width, height), got {len(seq)} values")
        x, y, w, h = (float(v) for v in seq)
        return cls(x, y, w, h)


PositionLike = Union[RoiPosition, Sequence[float]]


def as_position(pos: PositionLike) -> RoiPosition:
    if isinstance(pos, RoiPosition):
        return pos
    return RoiPosition.from_sequence(pos)


_BUTTON_SELECTION_TYPES = {0: "normal", 1: "extend", 2: "alt"}


@dataclass(frozen=True)
class ClickEvent:
    """A mouse-down on the canvas, in full-image coordinates.

    `button` follows the browser convention: 0 primary, 1 middle, 2 secondary.
    """

    x: float
    y: float
    button: int = 0
    shift: bool = False

    @property
    def selection_type(self) -> str:
        """'normal', 'extend' or 'alt' (the alternate/secondary click)."""
        return _BUTTON_SELECTION_TYPES.get(self.button, "normal")


class CallbackList:
    """Ordered callbacks addressable by an integer handle.

    Callbacks are invoked synchronously; a failing callback is logged and the
    remaining ones still run.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._callbacks: Dict[int, Callable[..., Any]] = {}
        self._next_id = 1

    def add(self, callback: Callable[..., Any]) -> int:
        cb_id = self._next_id
        self._next_id += 1
        self._callbacks[cb_id] = callback
        return cb_id

    def remove(self, cb_id: Optional[int]) -> bool:
        if cb_id is None:
            return False
        return self._callbacks.pop(cb_id, None) is not None

    def clear(self) -> None:
        self._callbacks.clear()

    def fire(self, *args: Any) -> None:
        for callback in list(self._callbacks.values()):
            try:
                callback(*args)
            except Exception:
                logger.exception(f"Error in {self._name} callback")

    def __len__(self) -> int:
        return len(self._callbacks)


class CanvasItem:
    """Base class for anything drawn on a RoiCanvas."""

    kind: str = "item"

    def __init__(
        self,
        *,
        tag: str = "",
        visible: bool = True,
        stay_on_top: bool = False,
    ) -> None:
        self.id: Optional[str] = None  # assigned by RoiCanvas.add_item()
        self.tag = tag
        self._visible = visible
        self.stay_on_top = stay_on_top
        self.canvas: Optional["RoiCanvas"] = None
        self._deleted = False
        self._app_data: Dict[str, Any] = {}
        self._button_down_callbacks = CallbackList(f"{self.kind} button-down")
        self._deleted_callbacks = CallbackList(f"{self.kind} deleted")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, tag={self.tag!r})"

    @property
    def is_deleted(self) -> bool:
        return self._deleted

    @property
    def visible(self) -> bool:
        return self._visible

    @visible.setter
    def visible(self, value: bool) -> None:
        value = bool(value)
        if value != self._visible:
            self._visible = value
            self._changed()

    # ------------- application data -------------

    def set_app_data(self, key: str, value: Any) -> None:
        self._app_data[key] = value

    def get_app_data(self, key: str, default: Any = None) -> Any:
        return self._app_data.get(key, default)

    def has_app_data(self, key: str) -> bool:
        return key in self._app_data

    # ------------- callbacks -------------

    def add_button_down_callback(self, callback: Callable[["CanvasItem", ClickEvent], None]) -> int:
        """Register callback(item, event) for clicks on this item."""
        return self._button_down_callbacks.add(callback)

    def remove_button_down_callback(self, cb_id: Optional[int]) -> bool:
        return self._button_down_callbacks.remove(cb_id)

    def button_down(self, event: ClickEvent) -> None:
        self._button_down_callbacks.fire(self, event)

    def on_deleted(self, callback: Callable[["CanvasItem"], None]) -> int:
        """Register callback(item), called once when the item is deleted."""
        return self._deleted_callbacks.add(callback)

    def remove_deleted_callback(self, cb_id: Optional[int]) -> bool:
        return self._deleted_callbacks.remove(cb_id)

    # ------------- lifecycle -------------

    def delete(self) -> None:
        """Remove the item from its canvas. Calling delete() again is a no-op."""
        if self._deleted:
            return
        self._deleted = True
        if self.canvas is not None:
            self.canvas._detach(self)
        self._deleted_callbacks.fire(self)
        self._deleted_callbacks.clear()
        self._button_down_callbacks.clear()
        logger.debug(f"deleted {self!r}")

    def _changed(self) -> None:
        if self.canvas is not None and not self._deleted:
            self.canvas.changed()


class CanvasImage(CanvasItem):
    """2D image content covering the full canvas extent."""

    kind = "image"

    def __init__(
        self,
        image: np.ndarray,
        *,
        vmin: float | None = None,
        vmax: float | None = None,
        cmap: str = "gray",
        button_down_fcn: Optional[Callable[[], None]] = None,
        tag: str = "",
    ) -> None:
        super().__init__(tag=tag)
        image = np.asarray(image)
        if image.ndim != 2:
            raise ValueError("CanvasImage expects a 2D numpy array")
        self.image = image
        self.vmin = float(vmin) if vmin is not None else float(np.nanmin(image))
        self.vmax = float(vmax) if vmax is not None else float(np.nanmax(image))
        self.cmap = cmap
        # The image's own click handler, called with no arguments.
        self.button_down_fcn = button_down_fcn
        # Bumped on every appearance change so views know to re-render.
        self.revision = 0

    @property
    def shape(self) -> Tuple[int, int]:
        return self.image.shape

    def button_down(self, event: ClickEvent) -> None:
        super().button_down(event)
        if self.button_down_fcn is not None:
            try:
                self.button_down_fcn()
            except Exception:
                logger.exception("Error in image button_down_fcn")

    def set_contrast(self, vmin: float | None, vmax: float | None) -> None:
        """Update vmin/vmax; None for either resets both to the data range."""
        if vmin is None or vmax is None:
            self.vmin = float(np.nanmin(self.image))
            self.vmax = float(np.nanmax(self.image))
        else:
            self.vmin = float(vmin)
            self.vmax = float(vmax)
        self.revision += 1
        self._changed()

    def set_cmap(self, cmap: str) -> None:
        self.cmap = cmap
        self.revision += 1
        self._changed()


class CanvasText(CanvasItem):
    """Text marker centred horizontally on its anchor point."""

    kind = "text"

    def __init__(
        self,
        x: float,
        y: float,
        text: str,
        *,
        color: str = "white",
        background_color: str | None = None,
        edge_color: str | None = None,
        font_size: float = 10.0,
        font_weight: str = "normal",
        tag: str = "",
        visible: bool = True,
        stay_on_top: bool = False,
    ) -> None:
        super().__init__(tag=tag, visible=visible, stay_on_top=stay_on_top)
        self.x = float(x)
        self.y = float(y)
        self.text = text
        self.color = color
        self.background_color = background_color
        self.edge_color = edge_color
        self.font_size = font_size
        self.font_weight = font_weight

    def set_anchor(self, x: float, y: float) -> None:
        self.x = float(x)
        self.y = float(y)
        self._changed()

    def box_size_px(self, padding_px: float = 2.0) -> Tuple[float, float]:
        """Approximate (width, height) of the marker box in display pixels."""
        width = 0.6 * self.font_size * max(1, len(self.text)) + 2 * padding_px
        height = self.font_size + 2 * padding_px
        return width, height

    def contains(
        self,
        vx: float,
        vy: float,
        anchor_vx: float,
        anchor_vy: float,
        padding_px: float = 2.0,
    ) -> bool:
        """Box hit-test in display pixels, given the anchor's display position."""
        w, h = self.box_size_px(padding_px)
        return abs(vx - anchor_vx) <= w / 2.0 and abs(vy - anchor_vy) <= h / 2.0


PositionConstraint = Callable[[RoiPosition], RoiPosition]


def make_constrain_to_rect_fn(
    x_limits: Tuple[float, float],
    y_limits: Tuple[float, float],
) -> PositionConstraint:
    """Return a constraint keeping a rectangle inside the given limits.

    The limits are captured when this is called. A rectangle is shifted back
    inside without changing its size; one larger than the limits is shrunk to
    fit.
    """
    x_lo, x_hi = min(x_limits), max(x_limits)
    y_lo, y_hi = min(y_limits), max(y_limits)

    def constrain(pos: RoiPosition) -> RoiPosition:
        w = min(pos.width, x_hi - x_lo)
        h = min(pos.height, y_hi - y_lo)
        x = min(max(pos.x, x_lo), x_hi - w)
        y = min(max(pos.y, y_lo), y_hi - h)
        return RoiPosition(x, y, w, h)

    return constrain


ContextMenuEntry = Tuple[str, Callable[[], None]]


class RectRoi(CanvasItem):
    """Axis-aligned rectangular region of interest.

    Position changes are published synchronously to subscribers registered
    with on_position_changed(). Dragging goes through the position constraint
    (set_constrained_position); set_position() does not.
    """

    kind = "roi"

    def __init__(
        self,
        position: PositionLike,
        *,
        tag: str = "",
        color: str | None = None,
        fill_color: str | None = None,
        fill_opacity: float | None = None,
        line_width: float | None = None,
    ) -> None:
        super().__init__(tag=tag)
        self._position = as_position(position)
        self._constraint: Optional[PositionConstraint] = None
        self._position_callbacks = CallbackList("roi position")
        self._fill_callbacks = CallbackList("roi fill button-down")
        self.deletable: bool = True

        # Styling; None falls back to the canvas config.
        self.color = color
        self.fill_color = fill_color
        self.fill_opacity = fill_opacity
        self.line_width = line_width

        self.fill_context_menu: List[ContextMenuEntry] = [("Delete", self.request_delete)]

    # ------------- position -------------

    def get_position(self) -> RoiPosition:
        return self._position

    def set_position(self, position: PositionLike) -> None:
        """Set the position and notify subscribers."""
        if self._deleted:
            raise RuntimeError(f"{self!r} has been deleted")
        self._position = as_position(position)
        self._changed()
        self._position_callbacks.fire(self._position)

    def set_constrained_position(self, position: PositionLike) -> None:
        """Apply the position constraint (if any), then set_position()."""
        pos = as_position(position)
        if self._constraint is not None:
            pos = self._constraint(pos)
        self.set_position(pos)

    def set_position_constraint(self, fn: Optional[PositionConstraint]) -> None:
        self._constraint = fn

    def get_position_constraint(self) -> Optional[PositionConstraint]:
        return self._constraint

    def on_position_changed(self, callback: Callable[[RoiPosition], None]) -> int:
        """Register callback(new_position). Returns a handle for removal."""
        return self._position_callbacks.add(callback)

    def remove_position_callback(self, cb_id: Optional[int]) -> bool:
        return self._position_callbacks.remove(cb_id)

    # ------------- fill (interior) clicks -------------

    def add_fill_callback(self, callback: Callable[["RectRoi", ClickEvent], None]) -> int:
        """Register callback(roi, event) for clicks on the ROI interior."""
        return self._fill_callbacks.add(callback)

    def remove_fill_callback(self, cb_id: Optional[int]) -> bool:
        return self._fill_callbacks.remove(cb_id)

    def fill_button_down(self, event: ClickEvent) -> None:
        self._fill_callbacks.fire(self, event)

    # ------------- deletion -------------

    def request_delete(self) -> bool:
        """Native deletion path (context menu, Delete key); honours `deletable`."""
        if not self.deletable:
            logger.debug(f"{self!r} is not deletable, ignoring delete request")
            return False
        self.delete()
        return True

    def delete(self) -> None:
        if self._deleted:
            return
        super().delete()
        self._position_callbacks.clear()
        self._fill_callbacks.clear()
