import pytest

from signdesk.services.coordinates import PdfRect, Point, Size, compute_scale, map_placement


def test_maps_viewport_box_onto_letter_page() -> None:
    rect = map_placement(
        Point(50, 100),
        viewport=Size(300, 400),
        page=Size(612, 792),
        size=Size(150, 75),
    )

    assert rect.width == pytest.approx(306)
    assert rect.height == pytest.approx(148.5)
    assert rect.x == pytest.approx(102)
    assert rect.y == pytest.approx(445.5)


def test_identity_scale_only_flips_y() -> None:
    rect = map_placement(Point(10, 20), Size(612, 792), Size(612, 792), Size(100, 50))

    assert rect == PdfRect(x=10, y=792 - 20 - 50, width=100, height=50)


def test_box_past_bottom_right_is_clamped_inside_page() -> None:
    rect = map_placement(Point(590, 780), Size(612, 792), Size(612, 792), Size(100, 50))

    assert rect.x == pytest.approx(512)
    assert rect.y == 0
    assert rect.right <= 612
    assert rect.top <= 792


def test_negative_position_is_clamped_to_origin() -> None:
    rect = map_placement(Point(-40, -30), Size(612, 792), Size(612, 792), Size(100, 50))

    assert rect.x == 0
    assert rect.y == pytest.approx(742)


def test_artifact_larger_than_page_collapses_to_origin() -> None:
    rect = map_placement(Point(20, 20), Size(200, 200), Size(200, 200), Size(400, 300))

    assert (rect.x, rect.y) == (0, 0)
    assert rect.width == 400


def test_size_in_points_is_not_rescaled() -> None:
    rect = map_placement(
        Point(50, 100),
        Size(300, 400),
        Size(612, 792),
        Size(80, 22.2),
        size_in_points=True,
    )

    assert rect.width == 80
    assert rect.height == 22.2
    assert rect.x == pytest.approx(102)
    assert rect.y == pytest.approx(792 - 198 - 22.2)


def test_compute_scale_rejects_degenerate_viewport() -> None:
    assert compute_scale(Size(300, 400), Size(612, 792)) == pytest.approx((2.04, 1.98))
    with pytest.raises(ValueError):
        compute_scale(Size(0, 400), Size(612, 792))


@pytest.mark.parametrize(
    "viewport, page",
    [
        (Size(612, 792), Size(612, 792)),
        (Size(300, 400), Size(612, 792)),
        (Size(1200, 900), Size(842, 595)),
        (Size(50, 80), Size(200, 300)),
    ],
)
@pytest.mark.parametrize("size", [Size(1, 1), Size(40, 20), Size(49, 79)])
@pytest.mark.parametrize(
    "fraction",
    [(-1.0, -1.0), (0.0, 0.0), (0.25, 0.75), (0.5, 0.5), (0.99, 0.01), (1.0, 1.0), (3.0, -2.0)],
)
def test_fitting_box_always_stays_on_page(viewport: Size, page: Size, size: Size, fraction: tuple[float, float]) -> None:
    position = Point(viewport.width * fraction[0], viewport.height * fraction[1])

    rect = map_placement(position, viewport, page, size)

    assert 0 <= rect.x
    assert 0 <= rect.y
    assert rect.right <= page.width + 1e-9
    assert rect.top <= page.height + 1e-9
