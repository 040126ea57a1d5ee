# niceroi/src/niceroi/roi_canvas/view.py

from __future__ import annotations

from html import escape
from typing import List, Optional

import matplotlib
import numpy as np
from nicegui import ui, events
from PIL import Image

from niceroi.utils.logging import get_logger
from .canvas import RoiCanvas
from .items import CanvasImage, CanvasText, ContextMenuEntry, RectRoi

logger = get_logger(__name__)


def array_to_pil(
    arr: np.ndarray,
    vmin: float | None = None,
    vmax: float | None = None,
    cmap: str = "gray",
) -> Image.Image:
    """Map a 2D NumPy array to an 8-bit RGB PIL image with a colormap."""
    arr = np.asarray(arr, dtype=float)

    if vmin is None:
        vmin = float(np.nanmin(arr))
    if vmax is None:
        vmax = float(np.nanmax(arr))
    if vmax <= vmin:
        vmax = vmin + 1e-6

    norm = np.clip((arr - vmin) / (vmax - vmin), 0.0, 1.0)
    rgba = matplotlib.colormaps[cmap](norm)
    rgb = (rgba[..., :3] * 255).astype(np.uint8)
    return Image.fromarray(rgb)


class RoiCanvasView:
    """NiceGUI rendering of a RoiCanvas.

    The top-most visible image is drawn as the background; ROIs and visible
    text markers are drawn as an SVG overlay in display coordinates. Mouse,
    wheel and key events are forwarded to the canvas model.
    """

    def __init__(self, canvas: RoiCanvas, *, parent=None) -> None:
        self.canvas = canvas
        self._image_key: Optional[tuple] = None

        container = parent if parent is not None else ui.element("div").classes("w-full")

        with container:
            self.interactive = (
                ui.interactive_image(
                    self._render_view_pil(),
                    cross=True,
                    events=["mousedown", "mousemove", "mouseup"],
                )
                .classes("w-full")
                .style(self._image_style())
            )
            self.interactive.on_mouse(self._on_mouse)
            self.interactive.on("wheel", self._on_wheel)
            self._menu = ui.menu()

            # Global key handler for Delete / Backspace / Enter / Escape
            ui.on("keydown", self._on_key)

        self._changed_sub = canvas.on_changed(self._redraw_overlays)
        self._viewport_sub = canvas.on_viewport_changed(lambda _vp: self._update_image())
        self._menu_sub = canvas.on_context_menu(self._open_context_menu)

        self._update_image()
        logger.info(
            f"RoiCanvasView initialized: canvas={canvas.img_width}x{canvas.img_height}, "
            f"display={canvas.DISPLAY_W}x{canvas.DISPLAY_H}"
        )

    # ------------- rendering -------------

    def _image_style(self) -> str:
        return (
            f"aspect-ratio: {self.canvas.DISPLAY_W} / {self.canvas.DISPLAY_H}; "
            f"object-fit: contain; border: {self.canvas.config.image_border_width}px solid #666;"
        )

    def _background(self) -> Optional[CanvasImage]:
        visible = [img for img in self.canvas.images() if img.visible]
        return visible[-1] if visible else None

    def _render_view_pil(self) -> Image.Image:
        """Render the current viewport region of the background image.

        The slice is always rescaled to DISPLAY_W x DISPLAY_H so the on-screen
        size stays constant while zooming.
        """
        disp = (self.canvas.DISPLAY_W, self.canvas.DISPLAY_H)
        background = self._background()
        if background is None:
            return Image.new("RGB", disp)

        y_min, y_max, x_min, x_max = self.canvas.viewport.get_int_slice()
        sub = background.image[y_min:y_max, x_min:x_max]
        img = array_to_pil(sub, vmin=background.vmin, vmax=background.vmax, cmap=background.cmap)
        if disp != (sub.shape[1], sub.shape[0]):
            img = img.resize(disp, Image.Resampling.BILINEAR)
        return img

    def _current_image_key(self) -> Optional[tuple]:
        background = self._background()
        if background is None:
            return None
        return background.id, background.revision

    def _update_image(self) -> None:
        """Redraw image + overlays."""
        self._image_key = self._current_image_key()
        self.interactive.set_source(self._render_view_pil())
        self.interactive.style(self._image_style())
        self._redraw_overlays()

    def _redraw_overlays(self) -> None:
        if self._current_image_key() != self._image_key:
            # background image swapped or restyled
            self._update_image()
            return

        svg_parts: List[str] = []
        for item in self.canvas.items:
            if not item.visible:
                continue
            if isinstance(item, RectRoi):
                svg_parts.append(self._roi_svg(item))
            elif isinstance(item, CanvasText):
                svg_parts.append(self._text_svg(item))

        draft = self.canvas.draft
        if draft is not None:
            left_vx, top_vy = self.canvas.to_view(draft.x, draft.y)
            right_vx, bottom_vy = self.canvas.to_view(draft.right, draft.bottom)
            svg_parts.append(
                f'<rect x="{left_vx}" y="{top_vy}" '
                f'width="{right_vx - left_vx}" height="{bottom_vy - top_vy}" '
                f'stroke="{self.canvas.config.draft_color}" stroke-dasharray="4 2" '
                f'stroke-width="{self.canvas.config.roi_line_width}" fill="none" />'
            )

        self.interactive.content = "".join(svg_parts)
        self.interactive.update()

    def _roi_svg(self, roi: RectRoi) -> str:
        cfg = self.canvas.config
        vp = self.canvas.viewport
        pos = roi.get_position()

        # Intersect ROI with viewport
        left = max(pos.x, vp.x_min)
        right = min(pos.right, vp.x_max)
        top = max(pos.y, vp.y_min)
        bottom = min(pos.bottom, vp.y_max)
        if right < left or bottom < top:
            return ""

        left_vx, top_vy = self.canvas.to_view(left, top)
        right_vx, bottom_vy = self.canvas.to_view(right, bottom)

        if roi is self.canvas.selected_roi:
            stroke = cfg.roi_selected_color
        else:
            stroke = roi.color or cfg.roi_color
        fill = roi.fill_color or cfg.roi_fill_color
        opacity = roi.fill_opacity if roi.fill_opacity is not None else cfg.roi_fill_opacity
        line_width = roi.line_width if roi.line_width is not None else cfg.roi_line_width

        return (
            f'<rect x="{left_vx}" y="{top_vy}" '
            f'width="{right_vx - left_vx}" height="{bottom_vy - top_vy}" '
            f'stroke="{stroke}" stroke-width="{line_width}" '
            f'fill="{fill}" fill-opacity="{opacity}" />'
        )

    def _text_svg(self, text: CanvasText) -> str:
        ax, ay = self.canvas.to_view(text.x, text.y)
        w, h = text.box_size_px(self.canvas.config.marker_padding_px)
        parts = []
        if text.background_color is not None or text.edge_color is not None:
            parts.append(
                f'<rect x="{ax - w / 2.0}" y="{ay - h / 2.0}" width="{w}" height="{h}" '
                f'fill="{text.background_color or "none"}" '
                f'stroke="{text.edge_color or "none"}" stroke-width="1" />'
            )
        parts.append(
            f'<text x="{ax}" y="{ay}" fill="{text.color}" '
            f'font-size="{text.font_size}" font-weight="{text.font_weight}" '
            f'text-anchor="middle" dominant-baseline="central">{escape(text.text)}</text>'
        )
        return "".join(parts)

    def _open_context_menu(self, roi: RectRoi, entries: List[ContextMenuEntry]) -> None:
        self._menu.clear()
        with self._menu:
            for label, callback in entries:
                ui.menu_item(label, on_click=lambda _e=None, cb=callback: cb())
        self._menu.open()

    # ------------- events -------------

    def _on_mouse(self, e: events.MouseEventArguments) -> None:
        """Forward NiceGUI mouse events to the canvas in display coordinates."""
        vx = max(0.0, min(float(self.canvas.DISPLAY_W - 1), e.image_x))
        vy = max(0.0, min(float(self.canvas.DISPLAY_H - 1), e.image_y))

        if e.type == "mousedown":
            self.canvas.mouse_down(vx, vy, button=e.button, shift=e.shift)
        elif e.type == "mousemove":
            self.canvas.mouse_move(vx, vy, buttons=e.buttons)
        elif e.type == "mouseup":
            self.canvas.mouse_up(vx, vy, button=e.button)

    def _on_key(self, e: events.GenericEventArguments) -> None:
        args = e.args or {}
        self.canvas.key_down(args.get("key", ""))

    def _on_wheel(self, e: events.GenericEventArguments) -> None:
        args = e.args or {}
        self.canvas.wheel(
            args.get("deltaX", 0),
            args.get("deltaY", 0),
            shift=bool(args.get("shiftKey", False)),
            ctrl=bool(args.get("ctrlKey", False)),
        )
