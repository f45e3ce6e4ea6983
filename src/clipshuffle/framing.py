"""Crop geometry — aspect-correct base crop and random zoom sub-crop.

Two-step crop, computed once per clip:

  1. base crop: the largest centred rectangle of the source frame with
     the output's aspect ratio. A wider source loses its sides, a taller
     source loses top and bottom, a matching source is used whole.
  2. zoom crop (optional): the base crop shrunk by a random factor and
     placed at a random origin inside the base crop, so scaling it to the
     output reads as a push-in. The zoom crop never leaves the base crop.
"""

import random
from dataclasses import dataclass

from .common import check_pct_range
from .errors import InvalidRange


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in source pixels (floats, not rounded)."""

    x: float
    y: float
    w: float
    h: float

    def box(self) -> tuple[float, float, float, float]:
        """Return the Pillow-style (left, upper, right, lower) box."""
        return (self.x, self.y, self.x + self.w, self.y + self.h)


@dataclass(frozen=True)
class ZoomPlan:
    apply_zoom: bool
    factor: float
    base: Rect
    crop: Rect

    @classmethod
    def unzoomed(cls, base: Rect) -> "ZoomPlan":
        return cls(False, 1.0, base, base)


def base_crop(src_w: int, src_h: int, out_w: int, out_h: int) -> Rect:
    """Largest centred rectangle of the source matching the output aspect."""
    out_aspect = out_w / out_h
    src_aspect = src_w / src_h

    if src_aspect > out_aspect:
        # Source is wider than the output: crop the sides.
        h = src_h
        w = h * out_aspect
        return Rect((src_w - w) / 2, 0.0, w, h)
    if src_aspect < out_aspect:
        # Source is taller than the output: crop top and bottom.
        w = src_w
        h = w / out_aspect
        return Rect(0.0, (src_h - h) / 2, w, h)
    return Rect(0.0, 0.0, float(src_w), float(src_h))


def zoom_crop(base: Rect, factor: float, rng: random.Random) -> Rect:
    """Shrink *base* by *factor* and place it at a random origin inside it."""
    w = base.w / factor
    h = base.h / factor
    x = base.x + rng.random() * (base.w - w)
    y = base.y + rng.random() * (base.h - h)
    return Rect(x, y, w, h)


def plan_zoom(
    base: Rect,
    zoom_probability: float,
    min_zoom_pct: float,
    max_zoom_pct: float,
    rng: random.Random,
) -> ZoomPlan:
    """Decide whether this clip zooms, and by how much.

    zoom_probability is a percentage (0-100). The zoom range is given in
    percent of the base crop (100 = no magnification); factors below 1
    would ask for a crop larger than the base and are clamped to 1.

    Raises:
        InvalidRange: min_zoom_pct/max_zoom_pct inverted or <= 0.
    """
    check_pct_range("zoom %", min_zoom_pct, max_zoom_pct, upper=None)

    apply_zoom = rng.random() < zoom_probability / 100
    if not apply_zoom:
        return ZoomPlan.unzoomed(base)

    factor = rng.uniform(min_zoom_pct / 100, max_zoom_pct / 100)
    factor = max(factor, 1.0)
    return ZoomPlan(True, factor, base, zoom_crop(base, factor, rng))


@dataclass(frozen=True)
class ZoomConfig:
    """Per-run zoom settings, all in percent."""

    probability: float = 0.0
    min_pct: float = 100.0
    max_pct: float = 100.0

    def __post_init__(self):
        if not 0 <= self.probability <= 100:
            raise InvalidRange(
                f"zoom probability must be within [0, 100], got {self.probability}"
            )
        check_pct_range("zoom %", self.min_pct, self.max_pct, upper=None)

    def plan(self, base: Rect, rng: random.Random) -> ZoomPlan:
        return plan_zoom(base, self.probability, self.min_pct, self.max_pct, rng)
