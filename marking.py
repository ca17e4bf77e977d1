"""Impact marking session model.

Holds everything the marking window edits while a shooter clicks impacts on a
target photo: the calibration, one or more groups each with a point of aim and
its points of impact, and the view zoom. A session turns into a saved record
of unit-space shots ready for analysis.
"""
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from calibration import Calibration, LinearUnit, PixelPoint, calibrate, to_unit_offset
from group_stats import Shot, is_valid_velocity
from logger import LogCategory, LoggableMixin

GROUP_COLORS = ["#36A2EB", "#FFCE56", "#9966FF", "#FF9F40", "#f472b6", "#6b7280"]
ZOOM_STEP = 1.2
MIN_ZOOM = 0.1
DELETE_RADIUS_PX = 10.0
OFFSET_DECIMALS = 4


@dataclass
class PointOfImpact:
    x: float
    y: float
    velocity: Optional[float] = None

    @property
    def point(self) -> PixelPoint:
        return PixelPoint(self.x, self.y)

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "velocity": self.velocity}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PointOfImpact":
        velocity = data.get("velocity")
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            velocity=float(velocity) if is_valid_velocity(velocity) else None,
        )


@dataclass
class MarkingGroup:
    """One shot string fired at a single point of aim (pixel space)."""

    color: str
    poa: Optional[PixelPoint] = None
    pois: List[PointOfImpact] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "poa": self.poa.to_dict() if self.poa else None,
            "pois": [poi.to_dict() for poi in self.pois],
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_color: str) -> "MarkingGroup":
        poa = data.get("poa")
        return cls(
            color=data.get("color") or default_color,
            poa=PixelPoint.from_value(poa) if poa else None,
            pois=[PointOfImpact.from_dict(p) for p in data.get("pois", [])],
        )


@dataclass
class MarkingSession(LoggableMixin):
    """Editable state of one marking session."""

    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    target_image_id: Optional[str] = None
    calibration: Optional[Calibration] = None
    groups: List[MarkingGroup] = field(default_factory=list)
    current_group_index: int = -1
    zoom: float = 1.0

    @property
    def current_group(self) -> Optional[MarkingGroup]:
        if 0 <= self.current_group_index < len(self.groups):
            return self.groups[self.current_group_index]
        return None

    @property
    def is_calibrated(self) -> bool:
        return self.calibration is not None

    @property
    def shot_count(self) -> int:
        return sum(len(group.pois) for group in self.groups)

    # ------------------------------------------------------------------
    # Calibration and view
    # ------------------------------------------------------------------

    def set_calibration(
        self,
        p1: PixelPoint,
        p2: PixelPoint,
        distance: float,
        units: LinearUnit | str = LinearUnit.INCHES,
    ) -> bool:
        """Calibrate from two clicked points; returns ``False`` on rejection.

        A rejected attempt leaves the session uncalibrated.
        """
        calibration = calibrate(p1, p2, distance, units)
        self.calibration = calibration
        if calibration is None:
            self.log_warning("Calibration rejected; scale points cleared",
                             category=LogCategory.CALIBRATION)
            return False
        return True

    def zoom_in(self) -> float:
        self.zoom *= ZOOM_STEP
        return self.zoom

    def zoom_out(self) -> float:
        self.zoom = max(self.zoom / ZOOM_STEP, MIN_ZOOM)
        return self.zoom

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def add_group(self) -> MarkingGroup:
        group = MarkingGroup(color=GROUP_COLORS[len(self.groups) % len(GROUP_COLORS)])
        self.groups.append(group)
        self.current_group_index = len(self.groups) - 1
        self.log_debug("Group added", category=LogCategory.MARKING,
                       group_index=self.current_group_index)
        return group

    def delete_current_group(self) -> bool:
        if self.current_group is None:
            return False
        del self.groups[self.current_group_index]
        if self.current_group_index >= len(self.groups):
            self.current_group_index = len(self.groups) - 1
        return True

    def select_group(self, index: int) -> MarkingGroup:
        if not 0 <= index < len(self.groups):
            raise IndexError(f"No group at index {index}")
        self.current_group_index = index
        return self.groups[index]

    # ------------------------------------------------------------------
    # Points
    # ------------------------------------------------------------------

    def set_poa(self, point: PixelPoint) -> MarkingGroup:
        """Place the point of aim of the current group."""
        group = self.current_group
        if group is None:
            raise ValueError("Add or select a group before setting the point of aim")
        group.poa = PixelPoint.from_value(point)
        return group

    def add_poi(self, point: PixelPoint, velocity: Optional[float] = None) -> PointOfImpact:
        """Mark an impact in the current group, creating a group if needed."""
        group = self.current_group or self.add_group()
        point = PixelPoint.from_value(point)
        poi = PointOfImpact(point.x, point.y, velocity if is_valid_velocity(velocity) else None)
        group.pois.append(poi)
        return poi

    def delete_last_poi(self) -> Optional[PointOfImpact]:
        group = self.current_group
        if group is None or not group.pois:
            return None
        return group.pois.pop()

    def delete_poi_near(self, point: PixelPoint, radius: float = DELETE_RADIUS_PX) -> bool:
        """Delete the first impact within ``radius`` screen pixels of ``point``.

        Groups are scanned in order and impacts newest first.
        """
        click_radius = radius / self.zoom
        for group in self.groups:
            for i in range(len(group.pois) - 1, -1, -1):
                poi = group.pois[i]
                if math.hypot(point[0] - poi.x, point[1] - poi.y) < click_radius:
                    del group.pois[i]
                    return True
        return False

    def set_velocity(self, group_index: int, poi_index: int, velocity: Optional[float]) -> None:
        poi = self.groups[group_index].pois[poi_index]
        poi.velocity = float(velocity) if is_valid_velocity(velocity) else None

    # ------------------------------------------------------------------
    # Conversion and persistence
    # ------------------------------------------------------------------

    def build_shots(self) -> List[Shot]:
        """Convert marked impacts to unit-space shots.

        Only groups with a point of aim contribute, and nothing is produced
        until the session is calibrated.
        """
        if self.calibration is None:
            return []

        shots: List[Shot] = []
        shot_counter = 0
        for group_index, group in enumerate(self.groups):
            if not group.pois or group.poa is None:
                continue
            for poi in group.pois:
                shot_counter += 1
                x, y = to_unit_offset(poi.point, group.poa, self.calibration)
                shots.append(
                    Shot(
                        x=round(x, OFFSET_DECIMALS),
                        y=round(y, OFFSET_DECIMALS),
                        velocity=poi.velocity,
                        units=self.calibration.units.value,
                        shot_number=shot_counter,
                        group=group_index + 1,
                    )
                )
        return shots

    def to_record(
        self,
        *,
        target_distance: Optional[float] = None,
        distance_units: str = "yards",
        firearm_id: Optional[str] = None,
        load_id: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Freeze the session into a saved-session record."""
        if self.calibration is not None:
            scale = self.calibration.to_dict()
        else:
            scale = {"p1": None, "p2": None, "distance": None,
                     "units": LinearUnit.INCHES.value, "pixelsPerUnit": None}
        shots = self.build_shots()
        self.log_info("Session frozen for saving", category=LogCategory.MARKING,
                      session=self.session_id, shots=len(shots), groups=len(self.groups))
        return {
            "id": self.session_id,
            "timestamp": timestamp or datetime.now(timezone.utc).isoformat(),
            "targetImageId": self.target_image_id,
            "firearmId": firearm_id,
            "loadId": load_id,
            "targetDistance": target_distance if target_distance else None,
            "distanceUnits": distance_units,
            "groups": [group.to_dict() for group in self.groups],
            "scale": scale,
            "shots": [shot.to_dict() for shot in shots],
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "MarkingSession":
        """Reopen a saved session for further marking."""
        groups = [
            MarkingGroup.from_dict(g, GROUP_COLORS[i % len(GROUP_COLORS)])
            for i, g in enumerate(record.get("groups") or [])
        ]
        return cls(
            session_id=record.get("id") or uuid.uuid4().hex,
            target_image_id=record.get("targetImageId"),
            calibration=Calibration.from_dict(record.get("scale")),
            groups=groups,
            current_group_index=0 if groups else -1,
        )


__all__ = [
    "GROUP_COLORS",
    "MarkingGroup",
    "MarkingSession",
    "PointOfImpact",
]
