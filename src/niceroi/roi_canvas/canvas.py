# niceroi/src/niceroi/roi_canvas/canvas.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np

from niceroi.utils.logging import get_logger
from .items import (
    CallbackList,
    CanvasImage,
    CanvasItem,
    CanvasText,
    ClickEvent,
    ContextMenuEntry,
    RectRoi,
    RoiPosition,
)
from .viewport import Viewport, full_to_view, view_to_full

logger = get_logger(__name__)


@dataclass
class RoiCanvasConfig:
    # Wheel / zoom behavior
    wheel_default_axis: str = "both"        # "both", "x", or "y"
    wheel_shift_axis: str | None = "x"      # axis when Shift held
    wheel_ctrl_axis: str | None = "y"       # axis when Ctrl held
    edge_tolerance_px: float = 5.0          # edge hit-test tolerance (display px)
    zoom_in_factor: float = 0.8
    zoom_out_factor: float = 1.25

    # ROI appearance
    roi_color: str = "red"
    roi_selected_color: str = "lime"
    roi_line_width: float = 2.0
    roi_fill_color: str = "red"
    roi_fill_opacity: float = 0.15
    draft_color: str = "yellow"

    # Text marker hit box padding (display px)
    marker_padding_px: float = 2.0

    # ROI geometry constraints (in full-image pixels)
    min_roi_width: float = 3.0
    min_roi_height: float = 3.0

    # Panning behavior (Shift + drag)
    enable_panning: bool = True

    # Display resolution (logical pixel grid); defaults to the image size
    display_width_px: int | None = None
    display_height_px: int | None = None
    image_border_width: int = 0


class RoiCanvas:
    """Headless drawing surface for images, text markers and rectangular ROIs.

    Items are kept in paint order (bottom first). The canvas's visible extent
    is its viewport; get_x_limits()/get_y_limits() always read it live.

    Mouse handlers take display coordinates, exactly as a view receives them.
    With the default display size and a full viewport, display and full-image
    coordinates coincide.

    Events (via callback registration):
        on_changed(handler): handler() after any visual change
        on_viewport_changed(handler): handler(viewport_dict)
        on_context_menu(handler): handler(roi, entries) on an alternate
            click on an ROI interior that has a non-empty fill context menu
    """

    def __init__(
        self,
        img_width: int,
        img_height: int,
        *,
        config: RoiCanvasConfig | None = None,
    ) -> None:
        if img_width <= 0 or img_height <= 0:
            raise ValueError(f"RoiCanvas size must be positive, got {img_width}x{img_height}")

        self.img_width = int(img_width)
        self.img_height = int(img_height)
        self.config = config if config is not None else RoiCanvasConfig()

        self.DISPLAY_W = (
            int(self.config.display_width_px)
            if self.config.display_width_px is not None
            else self.img_width
        )
        self.DISPLAY_H = (
            int(self.config.display_height_px)
            if self.config.display_height_px is not None
            else self.img_height
        )

        self.viewport = Viewport(img_width=self.img_width, img_height=self.img_height)

        self._items: List[CanvasItem] = []
        self._next_id: int = 1
        self._selected_id: Optional[str] = None

        # SelectionType of the last mouse-down: "normal", "extend" or "alt"
        self.selection_type: str = "normal"

        self._changed_handlers = CallbackList("canvas changed")
        self._viewport_handlers = CallbackList("viewport changed")
        self._context_menu_handlers = CallbackList("context menu")

        # Interaction state
        self._mode: str = "idle"  # "idle", "drawing", "moving", "resizing_*", "panning"
        self._start_x_full: Optional[float] = None
        self._start_y_full: Optional[float] = None
        self._drag_roi_id: Optional[str] = None
        self._drag_orig: Optional[RoiPosition] = None
        self._last_mouse_x_full: Optional[float] = None
        self._last_mouse_y_full: Optional[float] = None

        # Panning is anchored to display coords and a viewport snapshot
        self._start_vx: Optional[float] = None
        self._start_vy: Optional[float] = None
        self._pan_viewport_orig: dict | None = None

        # Interactive rectangle drawing
        self._draw_future: Optional[asyncio.Future] = None
        self._draft: Optional[RoiPosition] = None

    @classmethod
    def from_image(
        cls,
        image: np.ndarray,
        *,
        vmin: float | None = None,
        vmax: float | None = None,
        cmap: str = "gray",
        button_down_fcn: Optional[Callable[[], None]] = None,
        config: RoiCanvasConfig | None = None,
    ) -> "RoiCanvas":
        """Create a canvas sized to `image` with the image as its bottom item."""
        img = CanvasImage(image, vmin=vmin, vmax=vmax, cmap=cmap, button_down_fcn=button_down_fcn)
        height, width = img.shape
        canvas = cls(width, height, config=config)
        canvas.add_item(img)
        logger.info(f"RoiCanvas created from image {width}x{height}, cmap={cmap}")
        return canvas

    # ------------- items -------------

    @property
    def items(self) -> List[CanvasItem]:
        """Items in paint order, bottom first."""
        return list(self._items)

    def add_item(self, item: CanvasItem) -> CanvasItem:
        """Add an item above all others except `stay_on_top` items."""
        if item.is_deleted:
            raise ValueError(f"Cannot add deleted item {item!r}")
        if item.canvas is not None and item.canvas is not self:
            raise ValueError(f"{item!r} already belongs to another canvas")
        if item in self._items:
            return item

        if item.id is None:
            item.id = f"{item.kind}-{self._next_id}"
            self._next_id += 1
        item.canvas = self

        if item.stay_on_top:
            self._items.append(item)
        else:
            index = next(
                (i for i, it in enumerate(self._items) if it.stay_on_top),
                len(self._items),
            )
            self._items.insert(index, item)

        logger.debug(f"add_item: {item!r}")
        self.changed()
        return item

    def remove_item(self, item: CanvasItem) -> None:
        """Delete `item`, firing its on_deleted callbacks."""
        if item in self._items:
            item.delete()

    def _detach(self, item: CanvasItem) -> None:
        if item not in self._items:
            return
        self._items.remove(item)
        if item.id == self._selected_id:
            self._selected_id = None
        if item.id == self._drag_roi_id:
            self._reset_interaction()
        self.changed()

    def bring_to_front(self, item: CanvasItem) -> None:
        if item not in self._items:
            return
        self._items.remove(item)
        self._items.append(item)
        self.changed()

    def get_item(self, item_id: str) -> Optional[CanvasItem]:
        return next((it for it in self._items if it.id == item_id), None)

    def find_by_tag(self, tag: str) -> List[CanvasItem]:
        return [it for it in self._items if it.tag == tag]

    def images(self) -> List[CanvasImage]:
        return [it for it in self._items if isinstance(it, CanvasImage)]

    def rois(self) -> List[RectRoi]:
        return [it for it in self._items if isinstance(it, RectRoi)]

    def texts(self) -> List[CanvasText]:
        return [it for it in self._items if isinstance(it, CanvasText)]

    # ------------- selection -------------

    @property
    def selected_roi(self) -> Optional[RectRoi]:
        if self._selected_id is None:
            return None
        item = self.get_item(self._selected_id)
        return item if isinstance(item, RectRoi) else None

    def select_roi(self, roi: Optional[RectRoi]) -> None:
        new_id = roi.id if roi is not None and roi in self._items else None
        if new_id != self._selected_id:
            self._selected_id = new_id
            self.changed()

    # ------------- bounds / viewport -------------

    def get_x_limits(self) -> Tuple[float, float]:
        return self.viewport.x_limits

    def get_y_limits(self) -> Tuple[float, float]:
        return self.viewport.y_limits

    def get_viewport(self) -> dict:
        return self.viewport.to_dict()

    def set_viewport(self, vp_dict: dict) -> None:
        self.viewport = Viewport.from_dict(vp_dict)
        self._viewport_changed()

    def reset_view(self) -> None:
        """Show full image."""
        self.viewport.reset()
        self._viewport_changed()
        logger.debug("reset_view: viewport reset to full image")

    def zoom_around(self, x_center: float, y_center: float, factor_x: float, factor_y: float) -> None:
        self.viewport.zoom_around(x_center, y_center, factor_x, factor_y)
        self._viewport_changed()

    def pan(self, dx: float, dy: float) -> None:
        self.viewport.pan(dx, dy)
        self._viewport_changed()

    def to_view(self, x: float, y: float) -> Tuple[float, float]:
        return full_to_view(x, y, self.viewport, self.DISPLAY_W, self.DISPLAY_H)

    def to_full(self, vx: float, vy: float) -> Tuple[float, float]:
        return view_to_full(vx, vy, self.viewport, self.DISPLAY_W, self.DISPLAY_H)

    # ------------- event registration -------------

    def on_changed(self, handler: Callable[[], None]) -> int:
        return self._changed_handlers.add(handler)

    def remove_changed_callback(self, cb_id: Optional[int]) -> bool:
        return self._changed_handlers.remove(cb_id)

    def on_viewport_changed(self, handler: Callable[[dict], None]) -> int:
        return self._viewport_handlers.add(handler)

    def remove_viewport_callback(self, cb_id: Optional[int]) -> bool:
        return self._viewport_handlers.remove(cb_id)

    def on_context_menu(self, handler: Callable[[RectRoi, List[ContextMenuEntry]], None]) -> int:
        return self._context_menu_handlers.add(handler)

    def changed(self) -> None:
        self._changed_handlers.fire()

    def _viewport_changed(self) -> None:
        self._viewport_handlers.fire(self.viewport.to_dict())
        self.changed()

    # ------------- interactive drawing -------------

    @property
    def draft(self) -> Optional[RoiPosition]:
        """Rectangle currently being rubber-banded, if any."""
        return self._draft

    @property
    def is_drawing(self) -> bool:
        return self._draw_future is not None

    async def draw_rect(self) -> Optional[RoiPosition]:
        """Wait for the user to drag out a rectangle.

        Returns the rectangle, or None if the user aborts (Escape, a new
        draw_rect() request, or a zero-area rectangle).
        """
        self.cancel_draw()
        self._draw_future = asyncio.get_running_loop().create_future()
        logger.debug("draw_rect: waiting for user")
        return await self._draw_future

    def cancel_draw(self) -> None:
        if self._mode == "drawing":
            self._reset_interaction()
        self._finish_draw(None)

    def _finish_draw(self, result: Optional[RoiPosition]) -> None:
        future, self._draw_future = self._draw_future, None
        had_draft = self._draft is not None
        self._draft = None
        if future is not None and not future.done():
            future.set_result(result)
        if had_draft:
            self.changed()

    # ------------- mouse / keyboard -------------

    def mouse_down(self, vx: float, vy: float, button: int = 0, shift: bool = False) -> None:
        x_full, y_full = self.to_full(vx, vy)
        self._last_mouse_x_full = x_full
        self._last_mouse_y_full = y_full

        event = ClickEvent(x_full, y_full, button=button, shift=shift)
        self.selection_type = event.selection_type

        # Interactive drawing takes every primary press
        if self._draw_future is not None and button == 0:
            self._mode = "drawing"
            self._start_x_full = self._clamp_x(x_full)
            self._start_y_full = self._clamp_y(y_full)
            self._draft = RoiPosition(self._start_x_full, self._start_y_full, 0.0, 0.0)
            self.changed()
            return

        if button == 0 and shift and self.config.enable_panning:
            # Nothing to pan in full-view mode.
            if self.viewport.is_full_view():
                return
            self._mode = "panning"
            self._start_vx = vx
            self._start_vy = vy
            self._pan_viewport_orig = self.viewport.to_dict()
            return

        item, mode = self._hit_test(x_full, y_full)
        if item is None:
            return

        if isinstance(item, RectRoi):
            self.select_roi(item)
            if mode == "body":
                item.fill_button_down(event)
                if item.is_deleted:
                    return
                if event.selection_type == "alt":
                    if item.fill_context_menu:
                        self._context_menu_handlers.fire(item, list(item.fill_context_menu))
                    return
            if button != 0:
                return
            self._mode = "moving" if mode == "body" else mode
            self._start_x_full = x_full
            self._start_y_full = y_full
            self._drag_roi_id = item.id
            self._drag_orig = item.get_position()
            return

        item.button_down(event)

    def mouse_move(self, vx: float, vy: float, buttons: int = 1) -> None:
        """Handle a mouse move; only acts while the primary button is held."""
        x_full, y_full = self.to_full(vx, vy)
        self._last_mouse_x_full = x_full
        self._last_mouse_y_full = y_full

        if not (buttons & 1):
            return

        if self._mode == "panning":
            self._pan_to(vx, vy)
            return

        if self._mode == "drawing":
            if self._start_x_full is None or self._start_y_full is None:
                return
            x0, y0 = self._start_x_full, self._start_y_full
            x1, y1 = self._clamp_x(x_full), self._clamp_y(y_full)
            self._draft = RoiPosition(min(x0, x1), min(y0, y1), abs(x1 - x0), abs(y1 - y0))
            self.changed()
            return

        if self._drag_roi_id is None or self._drag_orig is None:
            return
        roi = self.get_item(self._drag_roi_id)
        if not isinstance(roi, RectRoi) or self._start_x_full is None or self._start_y_full is None:
            return

        orig = self._drag_orig
        min_w = self.config.min_roi_width
        min_h = self.config.min_roi_height

        if self._mode == "moving":
            dx = x_full - self._start_x_full
            dy = y_full - self._start_y_full
            new_pos = RoiPosition(orig.x + dx, orig.y + dy, orig.width, orig.height)
        elif self._mode == "resizing_left":
            left = min(x_full, orig.right - min_w)
            new_pos = RoiPosition(left, orig.y, orig.right - left, orig.height)
        elif self._mode == "resizing_right":
            right = max(x_full, orig.x + min_w)
            new_pos = RoiPosition(orig.x, orig.y, right - orig.x, orig.height)
        elif self._mode == "resizing_top":
            top = min(y_full, orig.bottom - min_h)
            new_pos = RoiPosition(orig.x, top, orig.width, orig.bottom - top)
        elif self._mode == "resizing_bottom":
            bottom = max(y_full, orig.y + min_h)
            new_pos = RoiPosition(orig.x, orig.y, orig.width, bottom - orig.y)
        else:
            return

        roi.set_constrained_position(new_pos)

    def mouse_up(self, vx: float, vy: float, button: int = 0) -> None:
        if button != 0:
            return

        if self._mode == "drawing":
            draft = self._draft
            if draft is None or int(round(draft.width)) == 0 or int(round(draft.height)) == 0:
                logger.debug("draw_rect: zero-area rectangle, treating as abort")
                self._finish_draw(None)
            else:
                logger.info(
                    f"Drew rectangle: x={draft.x:.1f}, y={draft.y:.1f}, "
                    f"w={draft.width:.1f}, h={draft.height:.1f}"
                )
                self._finish_draw(draft)

        self._reset_interaction()

    def key_down(self, key: str) -> None:
        """Keyboard shortcuts: delete ROI, reset view, abort drawing."""
        if key in ("Backspace", "Delete"):
            roi = self.selected_roi
            if roi is not None:
                roi.request_delete()
        elif key == "Enter":
            self.reset_view()
        elif key == "Escape":
            if self._draw_future is not None:
                logger.info("draw_rect: aborted by user")
            self.cancel_draw()

    def wheel(self, delta_x: float, delta_y: float, shift: bool = False, ctrl: bool = False) -> None:
        """Wheel zoom around the last mouse position with configurable axes."""
        dy = delta_y if isinstance(delta_y, (int, float)) else 0
        # Shift+wheel often arrives as horizontal scroll; still zoom on it.
        if dy == 0 and isinstance(delta_x, (int, float)) and delta_x != 0:
            dy = delta_x
        if dy == 0:
            return

        base_factor = self.config.zoom_in_factor if dy < 0 else self.config.zoom_out_factor

        axis = self.config.wheel_default_axis
        if shift and self.config.wheel_shift_axis is not None:
            axis = self.config.wheel_shift_axis
        elif ctrl and self.config.wheel_ctrl_axis is not None:
            axis = self.config.wheel_ctrl_axis

        factor_x = base_factor if axis in ("x", "both") else 1.0
        factor_y = base_factor if axis in ("y", "both") else 1.0
        if axis not in ("x", "y", "both"):
            factor_x = factor_y = base_factor

        cx, cy = self._last_mouse_x_full, self._last_mouse_y_full
        if cx is None or cy is None:
            cx = 0.5 * (self.viewport.x_min + self.viewport.x_max)
            cy = 0.5 * (self.viewport.y_min + self.viewport.y_max)

        self.zoom_around(cx, cy, factor_x, factor_y)
        logger.debug(
            f"Zoom: axis={axis}, factor_x={factor_x:.2f}, factor_y={factor_y:.2f}, "
            f"center=({cx:.1f}, {cy:.1f})"
        )

    # ------------- internals -------------

    def _pan_to(self, vx: float, vy: float) -> None:
        """Pan so the point under the cursor at pan start stays under it."""
        orig = self._pan_viewport_orig
        if orig is None or self._start_vx is None or self._start_vy is None:
            return
        full_w = float(orig["x_max"] - orig["x_min"])
        full_h = float(orig["y_max"] - orig["y_min"])
        dx_full = (vx - self._start_vx) * (full_w / float(self.DISPLAY_W))
        dy_full = (vy - self._start_vy) * (full_h / float(self.DISPLAY_H))

        self.viewport = Viewport.from_dict(orig)
        self.pan(dx_full, dy_full)

    def _reset_interaction(self) -> None:
        self._mode = "idle"
        self._drag_roi_id = None
        self._drag_orig = None
        self._start_x_full = None
        self._start_y_full = None
        self._start_vx = None
        self._start_vy = None
        self._pan_viewport_orig = None

    def _hit_test(self, x_full: float, y_full: float) -> tuple[Optional[CanvasItem], Optional[str]]:
        """Hit-test visible items top-most first.

        Returns (item, mode) where mode is one of "marker", "body",
        "resizing_left", "resizing_right", "resizing_top", "resizing_bottom",
        "image"; or (None, None) when nothing is hit.
        """
        tol = self.config.edge_tolerance_px
        vx, vy = self.to_view(x_full, y_full)

        for item in reversed(self._items):
            if not item.visible:
                continue

            if isinstance(item, CanvasText):
                ax, ay = self.to_view(item.x, item.y)
                if item.contains(vx, vy, ax, ay, self.config.marker_padding_px):
                    return item, "marker"
                continue

            if isinstance(item, RectRoi):
                pos = item.get_position()
                if not (pos.x <= x_full <= pos.right and pos.y <= y_full <= pos.bottom):
                    continue
                left_vx, top_vy = self.to_view(pos.x, pos.y)
                right_vx, bottom_vy = self.to_view(pos.right, pos.bottom)
                if abs(vx - left_vx) <= tol:
                    return item, "resizing_left"
                if abs(vx - right_vx) <= tol:
                    return item, "resizing_right"
                if abs(vy - top_vy) <= tol:
                    return item, "resizing_top"
                if abs(vy - bottom_vy) <= tol:
                    return item, "resizing_bottom"
                return item, "body"

            if isinstance(item, CanvasImage):
                h, w = item.shape
                if 0.0 <= x_full <= float(w) and 0.0 <= y_full <= float(h):
                    return item, "image"

        return None, None

    def _clamp_x(self, x: float) -> float:
        return max(0.0, min(float(self.img_width), x))

    def _clamp_y(self, y: float) -> float:
        return max(0.0, min(float(self.img_height), y))
