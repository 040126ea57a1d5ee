"""Fixtures for delete_roi tests."""

from __future__ import annotations

from typing import List

import numpy as np
import pytest

from niceroi.roi_canvas.canvas import RoiCanvas


class ClickRecorder:
    """Stands in for an image's click handler; counts calls."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def __call__(self, *args) -> None:
        self.calls.append(args)


@pytest.fixture
def image_clicks() -> ClickRecorder:
    return ClickRecorder()


@pytest.fixture
def canvas(sample_image: np.ndarray, image_clicks: ClickRecorder) -> RoiCanvas:
    """Canvas with one image; limits x=(0, 200), y=(0, 100)."""
    return RoiCanvas.from_image(sample_image, button_down_fcn=image_clicks)
