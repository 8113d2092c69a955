"""
Seat allocation engine.

The pure functions here decide which seats a request may have, given a
layout and the seats already taken. ``SeatAllocationEngine`` ties them to the
database and hands the final write to the storage boundary
(``registration_crud.commit_if_seats_free``), which re-checks occupancy under
a trip-row lock so concurrent registrants can never share a seat.
"""
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.core.exceptions import CapacityError, NotFoundError, SeatConflictError, ValidationError
from app.core.logging_config import get_logger
from app.crud.registration import registration_crud
from app.crud.trip import trip_crud
from app.models.registration import Registration
from app.models.trip import Trip
from app.services.vehicle_layouts import VehicleLayout, layout_for_trip
from common_utils import utc_now

logger = get_logger(__name__)

REQUIRED_PARTICIPANT_FIELDS = ("first_name", "last_name", "email", "phone")

# Rejection reasons reported by assign_distinct_seats
OCCUPIED = "occupied"
CLAIMED_IN_BATCH = "claimed_in_batch"
NOT_IN_LAYOUT = "not_in_layout"


@dataclass
class SeatAssignment:
    seat_number: int
    participant: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RejectedSeat:
    assignment: SeatAssignment
    reason: str


@dataclass
class SeatAssignmentResult:
    accepted: List[SeatAssignment] = field(default_factory=list)
    rejected: List[RejectedSeat] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.rejected

    def raise_for_rejections(self, trip_id: Optional[int] = None) -> None:
        """Raise the error a caller should see; bad seat ids outrank conflicts"""
        invalid = [r.assignment.seat_number for r in self.rejected if r.reason == NOT_IN_LAYOUT]
        if invalid:
            raise ValidationError(
                f"Seat(s) {', '.join(f'#{s}' for s in sorted(set(invalid)))} do not exist in this vehicle",
                details={"seats": sorted(set(invalid))},
            )
        conflicts = [r.assignment.seat_number for r in self.rejected]
        if conflicts:
            raise SeatConflictError(conflicts, trip_id=trip_id)


def list_available_seats(layout: VehicleLayout, occupied: Iterable[int]) -> Tuple[int, ...]:
    """Seat ids of the layout, in layout order, minus the occupied ones"""
    taken = set(occupied)
    return tuple(seat_id for seat_id in layout.seat_ids if seat_id not in taken)


def reserve_consecutive_block(
    layout: VehicleLayout,
    occupied: Iterable[int],
    start_seat: int,
    count: int,
) -> Tuple[int, ...]:
    """
    Reserve ``count`` consecutive seat ids starting at ``start_seat``.

    Only the upper bound of the layout is checked, so a block may include ids
    a non-contiguous layout does not have. Raises CapacityError when the block
    does not fit and SeatConflictError naming every occupied seat in it.
    """
    if count < 1:
        raise CapacityError("At least one seat must be requested", details={"count": count})
    if start_seat < 1:
        raise CapacityError("Seat numbers start at 1", details={"start_seat": start_seat})

    block = tuple(range(start_seat, start_seat + count))
    if block[-1] > layout.max_seat_id:
        raise CapacityError(
            f"Not enough seats: seat #{block[-1]} exceeds this vehicle's {layout.max_seat_id} seats",
            details={
                "start_seat": start_seat,
                "count": count,
                "max_seat_id": layout.max_seat_id,
                "out_of_range": [seat for seat in block if seat > layout.max_seat_id],
            },
        )

    taken = set(occupied)
    conflicts = [seat for seat in block if seat in taken]
    if conflicts:
        raise SeatConflictError(conflicts)
    return block


def assign_distinct_seats(
    layout: VehicleLayout,
    occupied: Iterable[int],
    requests: Sequence[SeatAssignment],
) -> SeatAssignmentResult:
    """
    Check seats picked one at a time on the seat map.

    Requests are processed in order; a seat claimed by an earlier request in
    the batch is rejected for every later one.
    """
    taken = set(occupied)
    claimed = set()
    result = SeatAssignmentResult()
    for request in requests:
        seat = request.seat_number
        if not layout.has_seat(seat):
            result.rejected.append(RejectedSeat(request, NOT_IN_LAYOUT))
        elif seat in taken:
            result.rejected.append(RejectedSeat(request, OCCUPIED))
        elif seat in claimed:
            result.rejected.append(RejectedSeat(request, CLAIMED_IN_BATCH))
        else:
            claimed.add(seat)
            result.accepted.append(request)
    return result


class SeatAllocationEngine:
    """Database-backed seat operations for one session"""

    def __init__(self, db: Session):
        self.db = db

    def get_trip(self, trip_id: int) -> Trip:
        trip = trip_crud.get_by_id(self.db, trip_id=trip_id)
        if trip is None:
            raise NotFoundError("trip", trip_id)
        return trip

    def get_trip_layout(self, trip_id: int) -> Tuple[Trip, VehicleLayout]:
        trip = self.get_trip(trip_id)
        return trip, layout_for_trip(trip)

    def occupied_seats(self, trip_id: int) -> set:
        return registration_crud.occupied_seats(self.db, trip_id=trip_id)

    def available_seats(self, trip_id: int) -> Tuple[int, ...]:
        _, layout = self.get_trip_layout(trip_id)
        return list_available_seats(layout, self.occupied_seats(trip_id))

    def seat_map(self, trip_id: int) -> Dict[str, Any]:
        """Layout, occupied and available seats of a trip, for the registration form"""
        trip, layout = self.get_trip_layout(trip_id)
        occupied = self.occupied_seats(trip_id)
        available = list_available_seats(layout, occupied)
        return {
            "trip_id": trip.trip_id,
            "layout": layout.to_dict(),
            "occupied_seats": sorted(occupied),
            "available_seats": list(available),
            "total_seats": layout.total_seats,
            "available_count": len(available),
        }

    def reserve_block(self, trip_id: int, start_seat: int, count: int) -> Tuple[int, ...]:
        _, layout = self.get_trip_layout(trip_id)
        try:
            return reserve_consecutive_block(layout, self.occupied_seats(trip_id), start_seat, count)
        except SeatConflictError as e:
            raise SeatConflictError(e.seats, trip_id=trip_id)

    def commit(
        self,
        trip_id: int,
        assignments: Sequence[SeatAssignment],
        *,
        expected_occupied: Optional[Iterable[int]] = None,
        added_by_admin: bool = False,
        shared_fields: Optional[Dict[str, Any]] = None,
    ) -> List[Registration]:
        """
        Persist one registration per assignment, all or none.

        ``shared_fields`` (payment, waiver) apply to every row. Batches of
        more than one seat are stamped as a multi-seat booking sharing a
        ``booking_group_id``.
        """
        if not assignments:
            raise ValidationError("At least one seat must be selected")
        for assignment in assignments:
            missing = [name for name in REQUIRED_PARTICIPANT_FIELDS if not assignment.participant.get(name)]
            if missing:
                raise ValidationError(
                    f"Missing participant details for seat #{assignment.seat_number}: {', '.join(missing)}",
                    details={"seat_number": assignment.seat_number, "missing_fields": missing},
                )

        _, layout = self.get_trip_layout(trip_id)

        # Layout membership and in-batch duplicates are checked against an
        # empty occupancy; live occupancy is checked under the lock.
        assign_distinct_seats(layout, (), assignments).raise_for_rejections(trip_id=trip_id)

        seat_count = len(assignments)
        booking_group_id = str(uuid.uuid4()) if seat_count > 1 else None
        now = utc_now()
        rows = []
        for assignment in assignments:
            row = dict(shared_fields or {})
            row.update(assignment.participant)
            row.update(
                seat_number=assignment.seat_number,
                is_multi_seat=seat_count > 1,
                seat_count=seat_count,
                booking_group_id=booking_group_id,
                added_by_admin=added_by_admin,
                registration_date=now,
            )
            rows.append(row)

        registrations = registration_crud.commit_if_seats_free(
            self.db,
            trip_id=trip_id,
            rows=rows,
            expected_occupied=expected_occupied,
        )
        logger.info(
            f"Committed {seat_count} seat(s) {[r.seat_number for r in registrations]} on trip {trip_id}"
            f"{' (admin)' if added_by_admin else ''}"
        )
        return registrations
