"""
Viewport to PDF coordinate conversion.

The signer's client reports positions in viewport units with the origin at the
top-left corner of the rendered page and y growing downward. PDF user space has
its origin at the bottom-left corner, y growing upward, and is measured in
points. Artifacts are anchored at their bottom-left corner when drawn.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class PdfRect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y + self.height


def compute_scale(viewport: Size, page: Size) -> tuple[float, float]:
    if viewport.width <= 0 or viewport.height <= 0:
        raise ValueError("Viewport dimensions must be positive")
    return page.width / viewport.width, page.height / viewport.height


def _clamp(value: float, upper: float) -> float:
    # An inverted range (artifact larger than the page) collapses to 0.
    return max(0.0, min(value, upper))


def map_placement(
    position: Point,
    viewport: Size,
    page: Size,
    size: Size,
    *,
    size_in_points: bool = False,
) -> PdfRect:
    """
    Translate a placement box from viewport space into PDF page space.

    ``position`` is the top-left corner of the box in the viewport. ``size`` is
    the artifact's display size, in viewport units unless ``size_in_points`` is
    set (typed signatures are measured directly in points and are not rescaled).

    The result is clamped so that it starts inside the page:
    x in [0, page.width - width] and y in [0, page.height - height].
    """
    scale_x, scale_y = compute_scale(viewport, page)

    if size_in_points:
        width, height = size.width, size.height
    else:
        width, height = size.width * scale_x, size.height * scale_y

    x = position.x * scale_x
    y = page.height - (position.y * scale_y) - height

    return PdfRect(
        x=_clamp(x, page.width - width),
        y=_clamp(y, page.height - height),
        width=width,
        height=height,
    )
