"""
niceroi: rectangular regions of interest on an image canvas, with NiceGUI rendering.

This package provides:
- RoiCanvas: headless canvas model (images, text markers, rectangular ROIs,
  viewport, mouse/keyboard interaction)
- RoiCanvasView: NiceGUI view of a RoiCanvas (import from niceroi.roi_canvas.view)
- add_roi / draw_roi: ROIs with a delete button, creation-time bounds
  correction and right-click pass-through to the image
- Logging utilities for library and application use

For logging configuration in standalone scripts/demos:
    ```python
    from niceroi.utils.logging import configure_logging
    configure_logging(level="DEBUG")
    ```
"""

import logging

from niceroi.utils.logging import configure_logging, get_logger

from niceroi.roi_canvas import RoiCanvas, RoiCanvasConfig, RoiPosition, RectRoi
from niceroi.delete_roi import (
    DeleteAffordance,
    DeleteButtonConfig,
    add_roi,
    draw_roi,
    roi_positions,
)

# NullHandler so logs don't propagate to root when no application has
# configured logging.
_logger = logging.getLogger("niceroi")
if not _logger.handlers:
    _logger.addHandler(logging.NullHandler())

__all__ = [
    "DeleteAffordance",
    "DeleteButtonConfig",
    "RectRoi",
    "RoiCanvas",
    "RoiCanvasConfig",
    "RoiPosition",
    "add_roi",
    "configure_logging",
    "draw_roi",
    "get_logger",
    "roi_positions",
]

__version__ = "0.1.0"
