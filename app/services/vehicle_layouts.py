"""
Vehicle layout catalog.

Each layout is an immutable, ordered set of addressable seat ids. Unknown
layout keys resolve to the configured default layout so a trip can always be
rendered and booked; every fallback is logged so bad keys stay visible.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from app.config import settings
from app.core.exceptions import ValidationError
from app.core.logging_config import get_logger

logger = get_logger(__name__)

CUSTOM_KEY_PATTERN = re.compile(r"^custom_(\d+)$")


@dataclass(frozen=True)
class SeatPosition:
    """Seat id plus its place in the vehicle, for seat-map rendering"""
    id: int
    row: Optional[int] = None
    position: Optional[str] = None


@dataclass(frozen=True)
class VehicleLayout:
    key: str
    name: str
    seats: Tuple[SeatPosition, ...]
    has_driver_name: bool = False
    seat_ids: Tuple[int, ...] = field(init=False)

    def __post_init__(self):
        ids = tuple(seat.id for seat in self.seats)
        if not ids:
            raise ValidationError(f"Layout '{self.key}' has no seats")
        if any(seat_id <= 0 for seat_id in ids):
            raise ValidationError(f"Layout '{self.key}' has non-positive seat ids")
        if len(set(ids)) != len(ids):
            raise ValidationError(f"Layout '{self.key}' has duplicate seat ids")
        object.__setattr__(self, "seat_ids", ids)

    @property
    def total_seats(self) -> int:
        return len(self.seat_ids)

    @property
    def max_seat_id(self) -> int:
        return max(self.seat_ids)

    def has_seat(self, seat_id: int) -> bool:
        return seat_id in self.seat_ids

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "total_seats": self.total_seats,
            "max_seat_id": self.max_seat_id,
            "has_driver_name": self.has_driver_name,
            "seats": [
                {"id": seat.id, "row": seat.row, "position": seat.position}
                for seat in self.seats
            ],
        }


def _rows(*rows: Iterable[str]) -> Tuple[SeatPosition, ...]:
    """Number seats consecutively across rows of position labels"""
    seats: List[SeatPosition] = []
    for row_number, positions in enumerate(rows, start=1):
        for position in positions:
            seats.append(SeatPosition(id=len(seats) + 1, row=row_number, position=position))
    return tuple(seats)


_BUS_MIDDLE_ROW = ("left", "center-left", "center-right", "right")

VEHICLE_LAYOUTS: Dict[str, VehicleLayout] = {
    "sprinter_15": VehicleLayout(
        key="sprinter_15",
        name="Mercedes Sprinter 2017 (15 Passenger)",
        has_driver_name=True,
        seats=_rows(
            ("center", "right"),                                # next to the driver
            ("left", "right"),                                  # captain's chairs
            ("left", "right"),
            ("left", "right"),
            ("left", "center", "right"),                        # bench
            ("left", "center-left", "center-right", "right"),   # back bench
        ),
    ),
    "bus_30": VehicleLayout(
        key="bus_30",
        name="30-Passenger Bus",
        seats=_rows(("right", "far-right"), *([_BUS_MIDDLE_ROW] * 7)),
    ),
    "highlander_7": VehicleLayout(
        key="highlander_7",
        name="Toyota Highlander (7 Seats)",
        has_driver_name=True,
        seats=_rows(
            ("right",),
            ("left", "center", "right"),
            ("left", "center", "right"),
        ),
    ),
}


def custom_layout(seat_ids: Iterable[int], key: str = "custom") -> VehicleLayout:
    """Build a layout from an explicit seat-id set, keeping the given order"""
    ids = list(seat_ids)
    return VehicleLayout(
        key=key,
        name=f"Custom ({len(ids)} Seats)",
        seats=tuple(SeatPosition(id=int(seat_id)) for seat_id in ids),
    )


def _default_layout() -> VehicleLayout:
    layout = VEHICLE_LAYOUTS.get(settings.DEFAULT_VEHICLE_LAYOUT)
    if layout is None:
        logger.warning(
            f"DEFAULT_VEHICLE_LAYOUT '{settings.DEFAULT_VEHICLE_LAYOUT}' is not in the catalog, using sprinter_15"
        )
        layout = VEHICLE_LAYOUTS["sprinter_15"]
    return layout


def get_layout(key: Optional[str]) -> VehicleLayout:
    """
    Resolve a layout key; never fails.

    ``custom_N`` keys resolve to seats 1..N. Anything else that is not in the
    catalog falls back to the default layout with a warning.
    """
    if key in VEHICLE_LAYOUTS:
        return VEHICLE_LAYOUTS[key]

    match = CUSTOM_KEY_PATTERN.match(key or "")
    if match and int(match.group(1)) > 0:
        return custom_layout(range(1, int(match.group(1)) + 1), key=key)

    fallback = _default_layout()
    logger.warning(f"Unknown vehicle layout key '{key}', falling back to '{fallback.key}'")
    return fallback


def layout_for_trip(trip) -> VehicleLayout:
    """Layout of a trip: its explicit custom seat set if it has one, else its layout key"""
    if trip.custom_seat_ids:
        return custom_layout(trip.custom_seat_ids, key=trip.vehicle_layout or "custom")
    return get_layout(trip.vehicle_layout)


def is_known_layout_key(key: str) -> bool:
    if key in VEHICLE_LAYOUTS:
        return True
    match = CUSTOM_KEY_PATTERN.match(key or "")
    return bool(match and int(match.group(1)) > 0)


def list_layouts() -> List[VehicleLayout]:
    return list(VEHICLE_LAYOUTS.values())
