"""
Screen region definitions for the TFT game window.

All regions are authored against a 1024x768 base layout and scaled to the
actual window size at runtime. Scaling is independent per axis, so a window
whose aspect ratio differs from 4:3 will drift out of alignment.
"""

import math
from dataclasses import dataclass
from typing import Iterator, Tuple


BASE_WIDTH = 1024
BASE_HEIGHT = 768

SHOP_SLOT_COUNT = 5
BENCH_SLOT_COUNT = 9


@dataclass(frozen=True)
class Point:
    """Integer pixel coordinate."""

    x: int
    y: int


@dataclass(frozen=True)
class Region:
    """Axis-aligned rectangle given by its top-left and bottom-right corners."""

    top_left: Point
    bottom_right: Point

    @property
    def width(self) -> int:
        return self.bottom_right.x - self.top_left.x

    @property
    def height(self) -> int:
        return self.bottom_right.y - self.top_left.y

    def to_tuple(self) -> Tuple[int, int, int, int]:
        """Return as (x, y, width, height) tuple."""
        return (self.top_left.x, self.top_left.y, self.width, self.height)

    def to_dict(self) -> dict:
        return {
            "top_left": {"x": self.top_left.x, "y": self.top_left.y},
            "bottom_right": {"x": self.bottom_right.x, "y": self.bottom_right.y},
        }


def _region(x1: int, y1: int, x2: int, y2: int) -> Region:
    return Region(Point(x1, y1), Point(x2, y2))


@dataclass(frozen=True)
class RegionLayout:
    """Every named region of the game HUD."""

    stage: Region
    gold: Region
    level: Region
    shop_slots: Tuple[Region, ...]
    bench_slots: Tuple[Region, ...]


BASE_REGIONS = RegionLayout(
    # Stage indicator, top centre
    stage=_region(474, 5, 550, 25),
    gold=_region(597, 730, 646, 751),
    # "Lv.5 4/20" next to the XP button
    level=_region(346, 728, 395, 758),
    shop_slots=(
        _region(343, 667, 450, 700),
        _region(453, 667, 560, 700),
        _region(563, 667, 670, 700),
        _region(673, 667, 780, 700),
        _region(783, 667, 890, 700),
    ),
    bench_slots=(
        _region(216, 545, 280, 570),
        _region(301, 545, 365, 570),
        _region(386, 545, 450, 570),
        _region(471, 545, 535, 570),
        _region(556, 545, 620, 570),
        _region(641, 545, 705, 570),
        _region(726, 545, 790, 570),
        _region(811, 545, 875, 570),
        _region(896, 545, 960, 570),
    ),
)


def iter_regions(layout: RegionLayout = BASE_REGIONS) -> Iterator[Tuple[str, Region]]:
    """
    Yield (label, region) for every region in the layout.

    Labels are also used to name debug crops: stage, gold, level,
    shop-0..shop-4, bench-0..bench-8.
    """
    yield "stage", layout.stage
    yield "gold", layout.gold
    yield "level", layout.level
    for i, region in enumerate(layout.shop_slots):
        yield f"shop-{i}", region
    for i, region in enumerate(layout.bench_slots):
        yield f"bench-{i}", region


def _round_half_up(value: float) -> int:
    # round() would use banker's rounding and shift some corners by a pixel
    return int(math.floor(value + 0.5))


def scale_region(region: Region, target_width: int, target_height: int) -> Region:
    """
    Scale a base-layout region to a target window size.

    Each corner coordinate is rounded on its own; width and height are
    whatever falls out of the rounded corners.
    """
    scale_x = target_width / BASE_WIDTH
    scale_y = target_height / BASE_HEIGHT
    return Region(
        top_left=Point(
            _round_half_up(region.top_left.x * scale_x),
            _round_half_up(region.top_left.y * scale_y),
        ),
        bottom_right=Point(
            _round_half_up(region.bottom_right.x * scale_x),
            _round_half_up(region.bottom_right.y * scale_y),
        ),
    )
