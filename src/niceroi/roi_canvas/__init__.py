"""ROI canvas - headless model of an image canvas with rectangular ROIs, plus a NiceGUI view."""

from .canvas import RoiCanvas, RoiCanvasConfig
from .items import (
    CanvasImage,
    CanvasItem,
    CanvasText,
    ClickEvent,
    RectRoi,
    RoiDict,
    RoiPosition,
    make_constrain_to_rect_fn,
)
from .viewport import Viewport

__all__ = [
    "CanvasImage",
    "CanvasItem",
    "CanvasText",
    "ClickEvent",
    "RectRoi",
    "RoiCanvas",
    "RoiCanvasConfig",
    "RoiDict",
    "RoiPosition",
    "Viewport",
    "make_constrain_to_rect_fn",
]
