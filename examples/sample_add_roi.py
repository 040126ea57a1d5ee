from __future__ import annotations

import numpy as np
from nicegui import ui

from niceroi.delete_roi import add_roi, draw_roi, roi_positions
from niceroi.roi_canvas import RoiCanvas
from niceroi.roi_canvas.view import RoiCanvasView
from niceroi.utils.logging import configure_logging


def create_demo_image(height: int = 120, width: int = 400) -> np.ndarray:
    """Simple demo image: sine waves + noise."""
    x = np.linspace(0, 4 * np.pi, width)
    img = np.zeros((height, width), dtype=float)
    for y in range(height):
        phase = 2 * np.pi * (y / height)
        img[y, :] = 0.5 + 0.5 * np.sin(x + phase)
    img += 0.05 * np.random.randn(height, width)
    return np.clip(img, 0.0, 1.0)


if __name__ in {"__main__", "__mp_main__"}:
    configure_logging(level="DEBUG")

    canvas = RoiCanvas.from_image(
        create_demo_image(),
        button_down_fcn=lambda: ui.notify("image clicked", timeout=1.0),
    )
    # Starts half outside the image; gets pulled back in on creation.
    add_roi(canvas, (360, 20, 80, 40))

    with ui.column().classes("items-start gap-2 w-3/4"):
        ui.label("add_roi demo").classes("text-lg font-bold")
        ui.label("Right-click inside an ROI to reach the image; click X to delete.")

        RoiCanvasView(canvas)

        async def on_draw() -> None:
            ui.notify("Drag out a rectangle (Escape aborts)", timeout=2.0)
            roi = await draw_roi(canvas)
            if roi is None:
                ui.notify("Aborted", timeout=1.0)

        def on_list() -> None:
            positions = roi_positions(canvas)
            if not positions:
                ui.notify("No ROIs", timeout=1.0)
            for button_id, pos in positions.items():
                ui.notify(
                    f"{button_id}: x={pos.x:.0f} y={pos.y:.0f} w={pos.width:.0f} h={pos.height:.0f}",
                    timeout=3.0,
                )

        with ui.row():
            ui.button("Draw ROI", on_click=on_draw)
            ui.button("List ROI positions", on_click=on_list)
            ui.button("Reset view", on_click=canvas.reset_view)

    ui.run()
