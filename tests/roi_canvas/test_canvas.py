# tests/roi_canvas/test_canvas.py

from __future__ import annotations

import asyncio

import numpy as np
import pytest

from niceroi.roi_canvas.canvas import RoiCanvas, RoiCanvasConfig
from niceroi.roi_canvas.items import (
    CanvasImage,
    CanvasText,
    ClickEvent,
    RectRoi,
    RoiPosition,
    make_constrain_to_rect_fn,
)


def _approx_pos(pos: RoiPosition, expected: tuple) -> None:
    assert pos.as_tuple() == pytest.approx(expected)


# --- RoiPosition / ClickEvent ---


def test_roi_position_edges_and_validation():
    pos = RoiPosition(10.0, 20.0, 30.0, 40.0)
    assert pos.right == 40.0
    assert pos.bottom == 60.0
    assert RoiPosition.from_sequence([10, 20, 30, 40]) == pos
    assert pos.to_dict() == {"x": 10.0, "y": 20.0, "width": 30.0, "height": 40.0}

    with pytest.raises(ValueError):
        RoiPosition(0.0, 0.0, -1.0, 5.0)
    with pytest.raises(ValueError):
        RoiPosition.from_sequence([1, 2, 3])


def test_click_event_selection_type():
    assert ClickEvent(0, 0, button=0).selection_type == "normal"
    assert ClickEvent(0, 0, button=1).selection_type == "extend"
    assert ClickEvent(0, 0, button=2).selection_type == "alt"


def test_canvas_rejects_bad_size_and_image():
    with pytest.raises(ValueError):
        RoiCanvas(0, 10)
    with pytest.raises(ValueError):
        CanvasImage(np.zeros((2, 3, 4)))


# --- RectRoi ---


def test_set_position_publishes_to_subscribers():
    roi = RectRoi((0, 0, 10, 10))
    seen: list[RoiPosition] = []
    sub = roi.on_position_changed(seen.append)

    roi.set_position((5, 5, 10, 10))
    assert seen == [RoiPosition(5.0, 5.0, 10.0, 10.0)]

    assert roi.remove_position_callback(sub) is True
    roi.set_position((6, 6, 10, 10))
    assert len(seen) == 1


def test_failing_subscriber_does_not_block_others():
    roi = RectRoi((0, 0, 10, 10))
    seen: list[RoiPosition] = []

    def boom(_pos: RoiPosition) -> None:
        raise RuntimeError("boom")

    roi.on_position_changed(boom)
    roi.on_position_changed(seen.append)
    roi.set_position((1, 1, 10, 10))
    assert len(seen) == 1


def test_constrained_position_uses_constraint():
    roi = RectRoi((0, 0, 10, 10))
    roi.set_position_constraint(make_constrain_to_rect_fn((0, 100), (0, 50)))

    roi.set_constrained_position((95, -5, 10, 10))
    _approx_pos(roi.get_position(), (90.0, 0.0, 10.0, 10.0))

    # set_position bypasses the constraint
    roi.set_position((95, -5, 10, 10))
    _approx_pos(roi.get_position(), (95.0, -5.0, 10.0, 10.0))


def test_constraint_shrinks_oversized_rectangle():
    constrain = make_constrain_to_rect_fn((0, 100), (0, 50))
    _approx_pos(constrain(RoiPosition(-10, -10, 300, 20)), (0.0, 0.0, 100.0, 20.0))


def test_request_delete_honours_deletable():
    canvas = RoiCanvas(100, 50)
    roi = canvas.add_item(RectRoi((10, 10, 20, 20)))

    roi.deletable = False
    assert roi.request_delete() is False
    assert roi in canvas.rois()

    roi.deletable = True
    assert roi.request_delete() is True
    assert roi.is_deleted
    assert canvas.rois() == []


def test_delete_is_idempotent_and_fires_once():
    canvas = RoiCanvas(100, 50)
    roi = canvas.add_item(RectRoi((10, 10, 20, 20)))
    calls: list[str] = []
    roi.on_deleted(lambda item: calls.append(item.id))

    roi.delete()
    roi.delete()
    assert calls == [roi.id]

    with pytest.raises(RuntimeError):
        roi.set_position((0, 0, 1, 1))


def test_remove_item_deletes_and_fires_on_deleted():
    canvas = RoiCanvas(100, 50)
    roi = canvas.add_item(RectRoi((10, 10, 20, 20)))
    calls: list[str] = []
    roi.on_deleted(lambda item: calls.append(item.id))

    canvas.remove_item(roi)
    canvas.remove_item(roi)

    assert roi.is_deleted
    assert canvas.rois() == []
    assert calls == [roi.id]


def test_app_data():
    text = CanvasText(1, 2, "X")
    assert text.get_app_data("missing", 42) == 42
    text.set_app_data("key", "value")
    assert text.has_app_data("key")
    assert text.get_app_data("key") == "value"


# --- RoiCanvas items ---


def test_ids_and_paint_order_keep_stay_on_top_items_above():
    canvas = RoiCanvas(100, 50)
    img = canvas.add_item(CanvasImage(np.zeros((50, 100))))
    marker = canvas.add_item(CanvasText(5, 5, "X", stay_on_top=True, tag="marker"))
    roi = canvas.add_item(RectRoi((10, 10, 20, 20)))

    assert canvas.items == [img, roi, marker]
    assert roi.id == "roi-3"
    assert canvas.get_item(roi.id) is roi
    assert canvas.find_by_tag("marker") == [marker]
    assert canvas.images() == [img]
    assert canvas.texts() == [marker]

    canvas.bring_to_front(img)
    assert canvas.items[-1] is img


def test_add_item_to_second_canvas_raises():
    roi = RectRoi((0, 0, 5, 5))
    RoiCanvas(100, 50).add_item(roi)
    with pytest.raises(ValueError):
        RoiCanvas(100, 50).add_item(roi)


def test_changed_handlers_fire_on_item_changes():
    canvas = RoiCanvas(100, 50)
    calls: list[int] = []
    canvas.on_changed(lambda: calls.append(1))

    roi = canvas.add_item(RectRoi((0, 0, 5, 5)))
    n = len(calls)
    roi.set_position((1, 1, 5, 5))
    assert len(calls) == n + 1


def test_limits_follow_viewport():
    canvas = RoiCanvas(200, 100)
    seen: list[dict] = []
    canvas.on_viewport_changed(seen.append)

    canvas.zoom_around(100.0, 50.0, 0.5, 0.5)
    assert canvas.get_x_limits() == pytest.approx((50.0, 150.0))
    assert canvas.get_y_limits() == pytest.approx((25.0, 75.0))
    assert seen[-1]["x_min"] == pytest.approx(50.0)

    canvas.key_down("Enter")
    assert canvas.get_x_limits() == (0.0, 200.0)


def test_from_image_sizes_canvas_to_image(sample_image):
    canvas = RoiCanvas.from_image(sample_image, cmap="viridis")
    assert (canvas.img_width, canvas.img_height) == (200, 100)
    assert len(canvas.images()) == 1
    assert canvas.images()[0].cmap == "viridis"


# --- hit testing / mouse ---


def test_hit_test_edges():
    """_hit_test should detect edge hits and distinguish left/right/top/bottom."""
    canvas = RoiCanvas(200, 100, config=RoiCanvasConfig(edge_tolerance_px=5.0))
    roi = canvas.add_item(RectRoi((50, 20, 100, 60)))

    # full view and display size == image size, so coordinates are 1:1
    assert canvas._hit_test(50.0, 50.0) == (roi, "resizing_left")
    assert canvas._hit_test(150.0, 50.0) == (roi, "resizing_right")
    assert canvas._hit_test(100.0, 20.0) == (roi, "resizing_top")
    assert canvas._hit_test(100.0, 80.0) == (roi, "resizing_bottom")
    assert canvas._hit_test(100.0, 50.0) == (roi, "body")
    assert canvas._hit_test(10.0, 10.0) == (None, None)


def test_hit_test_prefers_topmost_and_skips_hidden():
    canvas = RoiCanvas(200, 100)
    img = canvas.add_item(CanvasImage(np.zeros((100, 200))))
    roi = canvas.add_item(RectRoi((50, 20, 100, 60)))
    marker = canvas.add_item(CanvasText(100, 50, "X", stay_on_top=True))

    assert canvas._hit_test(100.0, 50.0) == (marker, "marker")
    marker.visible = False
    assert canvas._hit_test(100.0, 50.0) == (roi, "body")
    assert canvas._hit_test(10.0, 10.0) == (img, "image")


def test_drag_body_moves_roi_through_constraint():
    canvas = RoiCanvas(200, 100)
    roi = canvas.add_item(RectRoi((50, 20, 100, 60)))
    roi.set_position_constraint(make_constrain_to_rect_fn(canvas.get_x_limits(), canvas.get_y_limits()))

    canvas.mouse_down(100, 50)
    canvas.mouse_move(120, 55)
    _approx_pos(roi.get_position(), (70.0, 25.0, 100.0, 60.0))

    canvas.mouse_move(300, 50)
    _approx_pos(roi.get_position(), (100.0, 20.0, 100.0, 60.0))

    canvas.mouse_up(300, 50)
    canvas.mouse_move(10, 10)
    _approx_pos(roi.get_position(), (100.0, 20.0, 100.0, 60.0))


def test_drag_edges_resizes_and_respects_min_size():
    canvas = RoiCanvas(200, 100, config=RoiCanvasConfig(min_roi_width=3.0))
    roi = canvas.add_item(RectRoi((50, 20, 100, 60)))

    canvas.mouse_down(150, 50)
    canvas.mouse_move(170, 50)
    canvas.mouse_up(170, 50)
    _approx_pos(roi.get_position(), (50.0, 20.0, 120.0, 60.0))

    canvas.mouse_down(50, 50)
    canvas.mouse_move(190, 50)  # past the right edge
    canvas.mouse_up(190, 50)
    _approx_pos(roi.get_position(), (167.0, 20.0, 3.0, 60.0))


def test_alt_click_on_body_runs_fill_callbacks_then_context_menu():
    canvas = RoiCanvas(200, 100)
    roi = canvas.add_item(RectRoi((50, 20, 100, 60)))
    order: list[str] = []
    roi.add_fill_callback(lambda _roi, event: order.append(f"fill:{event.selection_type}"))
    canvas.on_context_menu(lambda _roi, entries: order.append("menu:" + ",".join(e[0] for e in entries)))

    canvas.mouse_down(100, 50, button=2)
    assert canvas.selection_type == "alt"
    assert order == ["fill:alt", "menu:Delete"]

    # alternate clicks never start a drag
    canvas.mouse_move(150, 50)
    _approx_pos(roi.get_position(), (50.0, 20.0, 100.0, 60.0))


def test_empty_context_menu_is_not_opened():
    canvas = RoiCanvas(200, 100)
    roi = canvas.add_item(RectRoi((50, 20, 100, 60)))
    roi.fill_context_menu = []
    opened: list[RectRoi] = []
    canvas.on_context_menu(lambda r, _entries: opened.append(r))

    canvas.mouse_down(100, 50, button=2)
    assert opened == []


def test_click_on_image_calls_its_handler():
    canvas = RoiCanvas(200, 100)
    calls: list[int] = []
    canvas.add_item(CanvasImage(np.zeros((100, 200)), button_down_fcn=lambda: calls.append(1)))

    canvas.mouse_down(10, 10)
    assert calls == [1]


def test_delete_key_deletes_selected_roi_only_when_deletable():
    canvas = RoiCanvas(200, 100)
    roi = canvas.add_item(RectRoi((50, 20, 100, 60)))
    canvas.mouse_down(100, 50)
    canvas.mouse_up(100, 50)
    assert canvas.selected_roi is roi

    roi.deletable = False
    canvas.key_down("Delete")
    assert roi in canvas.rois()

    roi.deletable = True
    canvas.key_down("Backspace")
    assert canvas.rois() == []
    assert canvas.selected_roi is None


def test_shift_drag_pans_zoomed_view():
    canvas = RoiCanvas(200, 100)
    canvas.zoom_around(100.0, 50.0, 0.5, 0.5)  # x=(50, 150)

    canvas.mouse_down(100, 50, shift=True)
    canvas.mouse_move(80, 50)  # 20 display px = 10 image px at 2x zoom
    canvas.mouse_up(80, 50)
    assert canvas.get_x_limits() == pytest.approx((60.0, 160.0))


def test_wheel_zooms_around_last_mouse_position():
    canvas = RoiCanvas(200, 100)
    canvas.mouse_move(100, 50, buttons=0)
    canvas.wheel(0, -1)
    assert canvas.get_x_limits() == pytest.approx((20.0, 180.0))
    assert canvas.get_y_limits() == pytest.approx((10.0, 90.0))

    canvas.wheel(0, 0)
    assert canvas.get_x_limits() == pytest.approx((20.0, 180.0))


# --- interactive drawing ---


@pytest.mark.asyncio
async def test_draw_rect_returns_dragged_rectangle():
    canvas = RoiCanvas(200, 100)
    task = asyncio.ensure_future(canvas.draw_rect())
    await asyncio.sleep(0)
    assert canvas.is_drawing

    canvas.mouse_down(60, 50)
    canvas.mouse_move(10, 20)
    assert canvas.draft is not None
    canvas.mouse_up(10, 20)

    pos = await task
    _approx_pos(pos, (10.0, 20.0, 50.0, 30.0))
    assert canvas.draft is None
    assert not canvas.is_drawing


@pytest.mark.asyncio
async def test_draw_rect_escape_aborts():
    canvas = RoiCanvas(200, 100)
    task = asyncio.ensure_future(canvas.draw_rect())
    await asyncio.sleep(0)

    canvas.mouse_down(10, 10)
    canvas.mouse_move(50, 50)
    canvas.key_down("Escape")
    assert await task is None
    assert canvas.draft is None


@pytest.mark.asyncio
async def test_draw_rect_zero_area_aborts():
    canvas = RoiCanvas(200, 100)
    task = asyncio.ensure_future(canvas.draw_rect())
    await asyncio.sleep(0)

    canvas.mouse_down(10, 10)
    canvas.mouse_up(10, 10)
    assert await task is None


@pytest.mark.asyncio
async def test_new_draw_request_supersedes_pending_one():
    canvas = RoiCanvas(200, 100)
    first = asyncio.ensure_future(canvas.draw_rect())
    await asyncio.sleep(0)
    second = asyncio.ensure_future(canvas.draw_rect())
    await asyncio.sleep(0)

    assert await first is None
    canvas.key_down("Escape")
    assert await second is None
