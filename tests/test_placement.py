import math

import pytest

from cliprecall.models.geometry import Display, PlacementRequest, Point, Rect, Size
from cliprecall.services.placement import coerce_point, display_for_point, place, surface_rect

SIZE = Size(400, 500)


def request(reference, displays, fixed=False, size=SIZE):
    return PlacementRequest(reference=reference, size=size, displays=tuple(displays), fixed_corner=fixed)


def test_cursor_placement_above_and_right():
    displays = [Display.simple(1920, 1080)]
    assert place(request(Point(800, 700), displays)) == Point(810, 200)


def test_flips_left_near_right_edge():
    displays = [Display.simple(1000, 800)]
    assert place(request(Point(950, 600), displays)) == Point(540, 100)


def test_flips_below_near_top_edge():
    displays = [Display.simple(1920, 1080)]
    assert place(request(Point(300, 100), displays)) == Point(310, 110)


def test_clamped_into_work_area():
    bounds = Rect(0, 0, 1920, 1080)
    work_area = Rect(0, 25, 1920, 1015)
    displays = [Display(bounds=bounds, work_area=work_area, primary=True)]
    # Below the top flip threshold but inside the menu bar.
    origin = place(request(Point(600, 510), displays))
    assert origin == Point(610, 25)

    # Bottom edge would run past the dock.
    origin = place(request(Point(600, 1000), displays))
    assert work_area.encloses(Rect(int(origin.x), int(origin.y), 400, 500))


def test_fixed_corner_uses_primary_work_area():
    secondary = Display.simple(1280, 1024, x=-1280, primary=False)
    primary = Display(bounds=Rect(0, 0, 1920, 1080), work_area=Rect(0, 25, 1920, 1055), primary=True)
    origin = place(request(Point(-500, 300), [secondary, primary], fixed=True))
    assert origin == Point(1920 - 400 - 20, 25 + 20)


def test_cursor_on_secondary_display():
    primary = Display.simple(1920, 1080)
    secondary = Display.simple(1280, 1024, x=1920, primary=False)
    origin = place(request(Point(3100, 800), [primary, secondary]))
    assert origin == Point(3100 - 400 - 10, 300)
    assert secondary.work_area.encloses(Rect(int(origin.x), int(origin.y), 400, 500))


def test_point_outside_every_display_uses_nearest():
    primary = Display.simple(1920, 1080)
    secondary = Display.simple(1280, 1024, x=1920, primary=False)
    origin = place(request(Point(3300, 600), [primary, secondary]))
    assert secondary.work_area.encloses(Rect(int(origin.x), int(origin.y), 400, 500))


@pytest.mark.parametrize("reference", [
    None,
    {"x": "a", "y": 3},
    {"x": 1},
    (math.nan, 10),
    (10, math.inf),
    (True, False),
    "100,200",
    (1, 2, 3),
])
def test_malformed_point_centres_on_primary(reference):
    displays = [Display.simple(1920, 1080)]
    assert place(request(reference, displays)) == Point(760, 290)


def test_accepts_mapping_and_tuple_points():
    assert coerce_point({"x": 5, "y": 6}) == Point(5, 6)
    assert coerce_point([5.5, 6]) == Point(5.5, 6)


def test_empty_displays_is_an_error():
    with pytest.raises(ValueError):
        place(request(Point(1, 1), []))
    with pytest.raises(ValueError):
        place(request(None, [], fixed=True))


def test_display_for_point_prefers_containing_display():
    left = Display.simple(100, 100)
    right = Display.simple(100, 100, x=100, primary=False)
    assert display_for_point([left, right], Point(150, 50)) is right


def test_surface_rect():
    rect = surface_rect(request(Point(800, 700), [Display.simple(1920, 1080)]))
    assert rect == Rect(810, 200, 400, 500)


@pytest.mark.parametrize("reference, fixed", [(Point(10, 10), True), (None, False)])
def test_corner_and_centre_stay_inside_small_work_area(reference, fixed):
    work_area = Rect(50, 30, 300, 400)
    displays = [Display(bounds=Rect(0, 0, 400, 480), work_area=work_area, primary=True)]
    assert place(request(reference, displays, fixed=fixed)) == Point(50, 30)


def test_fixed_corner_clamped_to_left_edge():
    displays = [Display.simple(410, 1080)]
    origin = place(request(None, displays, fixed=True))
    assert origin == Point(0, 20)
    assert displays[0].work_area.encloses(Rect(int(origin.x), int(origin.y), 400, 500))
