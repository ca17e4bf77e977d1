"""Target photo calibration for ShotLog.

Turns pixel coordinates clicked on a photographed target into real-world
offsets from the point of aim. A calibration is set from two pixel points and
the physical distance between them as entered by the shooter.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Tuple, Union

from logger import LogCategory, get_logger


class LinearUnit(Enum):
    """Linear units a calibration distance can be entered in."""

    INCHES = "in"
    MILLIMETERS = "mm"
    UNITS = "units"

    @classmethod
    def parse(cls, value: Union["LinearUnit", str, None]) -> "LinearUnit":
        """Return the matching unit, falling back to the generic ``units``."""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNITS


class PixelPoint(NamedTuple):
    """A point in image (pixel) space."""

    x: float
    y: float

    @classmethod
    def from_value(cls, value: Any) -> "PixelPoint":
        if isinstance(value, PixelPoint):
            return value
        if isinstance(value, dict):
            return cls(float(value["x"]), float(value["y"]))
        x, y = value
        return cls(float(x), float(y))

    def to_dict(self) -> Dict[str, float]:
        return {"x": float(self.x), "y": float(self.y)}


@dataclass(frozen=True)
class Calibration:
    """Pixel-to-unit scale for one marking session."""

    p1: PixelPoint
    p2: PixelPoint
    distance: float
    units: LinearUnit
    pixels_per_unit: float

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the calibration in the saved-session ``scale`` form."""
        return {
            "p1": self.p1.to_dict(),
            "p2": self.p2.to_dict(),
            "distance": float(self.distance),
            "units": self.units.value,
            "pixelsPerUnit": float(self.pixels_per_unit),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Calibration"]:
        """Rebuild a calibration from a saved ``scale`` mapping.

        Saved sessions that never completed a calibration carry ``None`` for
        the points or scale; those yield ``None`` here. ``pixelsPerUnit`` is
        recomputed from the points rather than read back.
        """
        if not data or data.get("p1") is None or data.get("p2") is None:
            return None
        distance = data.get("distance")
        if distance is None:
            return None
        return calibrate(
            PixelPoint.from_value(data["p1"]),
            PixelPoint.from_value(data["p2"]),
            float(distance),
            data.get("units"),
            log=False,
        )


def pixel_distance(p1: PixelPoint, p2: PixelPoint) -> float:
    """Euclidean distance between two pixel points."""
    return math.hypot(p2.x - p1.x, p2.y - p1.y)


def calibrate(
    p1: PixelPoint,
    p2: PixelPoint,
    real_distance: float,
    units: Union[LinearUnit, str, None] = LinearUnit.INCHES,
    *,
    log: bool = True,
) -> Optional[Calibration]:
    """Derive a pixels-per-unit scale from two points and their real distance.

    Returns ``None`` when the two points coincide or the real distance is not
    a finite, strictly positive number. Nothing is retained from a rejected attempt; the caller
    is expected to ask for the points again.
    """

    p1 = PixelPoint.from_value(p1)
    p2 = PixelPoint.from_value(p2)
    unit = LinearUnit.parse(units)
    d = pixel_distance(p1, p2)

    if not (d > 0 and math.isfinite(real_distance) and real_distance > 0):
        if log:
            get_logger().log_calibration(False, d, real_distance, unit.value)
        return None

    calibration = Calibration(
        p1=p1,
        p2=p2,
        distance=float(real_distance),
        units=unit,
        pixels_per_unit=d / real_distance,
    )
    if log:
        get_logger().log_calibration(
            True, d, real_distance, unit.value, calibration.pixels_per_unit
        )
    return calibration


def to_unit_offset(
    point: PixelPoint,
    poa: Optional[PixelPoint],
    calibration: Optional[Calibration],
) -> Tuple[float, float]:
    """Convert a pixel point to an offset from ``poa`` in calibrated units.

    Image Y grows downwards and is kept as-is; flipping for display happens
    in the plotting layer.
    """

    if poa is None:
        raise ValueError("A point of aim is required to compute an offset")
    if calibration is None:
        raise ValueError("A calibration is required to compute an offset")

    ppu = calibration.pixels_per_unit
    x = (point[0] - poa[0]) / ppu
    y = (point[1] - poa[1]) / ppu
    get_logger().trace(
        "Converted impact to unit offset",
        category=LogCategory.CALIBRATION,
        x=x,
        y=y,
    )
    return x, y


__all__ = [
    "Calibration",
    "LinearUnit",
    "PixelPoint",
    "calibrate",
    "pixel_distance",
    "to_unit_offset",
]
