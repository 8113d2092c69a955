"""
Tests for the seat allocation engine.

Tests cover:
- list_available_seats (layout order, idempotence)
- reserve_consecutive_block (bounds, conflicts)
- assign_distinct_seats (first request wins)
- SeatAllocationEngine.commit and the commit_if_seats_free storage boundary
"""
import pytest

from app.core.exceptions import CapacityError, NotFoundError, SeatConflictError, ValidationError
from app.crud.registration import registration_crud
from app.models.registration import Registration
from app.services.seat_allocation import (
    CLAIMED_IN_BATCH,
    NOT_IN_LAYOUT,
    OCCUPIED,
    SeatAllocationEngine,
    SeatAssignment,
    assign_distinct_seats,
    list_available_seats,
    reserve_consecutive_block,
)
from app.services.vehicle_layouts import custom_layout, get_layout


def participant(name="Ana"):
    return {"first_name": name, "last_name": "Lee", "email": f"{name.lower()}@example.com", "phone": "+1 555 0100"}


# =====================================================================
# Pure functions
# =====================================================================

class TestListAvailableSeats:

    def test_removes_occupied_in_layout_order(self):
        layout = custom_layout([5, 1, 3, 2])
        assert list_available_seats(layout, {3}) == (5, 1, 2)

    def test_listing_is_idempotent(self):
        layout = get_layout("sprinter_15")
        occupied = {1, 4, 9}
        first = list_available_seats(layout, occupied)
        second = list_available_seats(layout, occupied)
        assert first == second
        assert len(first) == 12

    def test_occupied_seats_outside_layout_are_ignored(self):
        layout = get_layout("custom_3")
        assert list_available_seats(layout, [7]) == (1, 2, 3)


class TestReserveConsecutiveBlock:

    @pytest.fixture
    def five_seats(self):
        return get_layout("custom_5")

    def test_free_block(self, five_seats):
        assert reserve_consecutive_block(five_seats, {3}, 4, 2) == (4, 5)

    @pytest.mark.parametrize("start", [1, 2, 3])
    def test_block_covering_occupied_seat_is_rejected(self, five_seats, start):
        with pytest.raises(SeatConflictError) as exc:
            reserve_consecutive_block(five_seats, {3}, start, 3)
        assert exc.value.seats == [3]

    def test_block_past_last_seat_is_rejected(self, five_seats):
        with pytest.raises(CapacityError) as exc:
            reserve_consecutive_block(five_seats, {3}, 4, 3)
        assert exc.value.details["out_of_range"] == [6]

    def test_conflict_lists_every_occupied_seat(self, five_seats):
        with pytest.raises(SeatConflictError) as exc:
            reserve_consecutive_block(five_seats, {2, 4}, 1, 5)
        assert exc.value.seats == [2, 4]
        assert "#2, #4" in exc.value.message

    @pytest.mark.parametrize("start,count", [(0, 2), (1, 0), (-1, 1)])
    def test_non_positive_requests_are_rejected(self, five_seats, start, count):
        with pytest.raises(CapacityError):
            reserve_consecutive_block(five_seats, set(), start, count)

    def test_never_exceeds_max_seat_id(self):
        layout = get_layout("highlander_7")
        for start in range(1, 9):
            for count in range(1, 9):
                try:
                    block = reserve_consecutive_block(layout, set(), start, count)
                except CapacityError:
                    continue
                assert max(block) <= layout.max_seat_id

    def test_gaps_in_layout_are_not_checked(self):
        layout = custom_layout([1, 2, 4, 5])
        assert reserve_consecutive_block(layout, set(), 2, 3) == (2, 3, 4)


class TestAssignDistinctSeats:

    def test_first_request_wins(self):
        layout = get_layout("custom_5")
        first = SeatAssignment(2, participant("Ana"))
        second = SeatAssignment(2, participant("Ben"))
        result = assign_distinct_seats(layout, set(), [first, second])
        assert result.accepted == [first]
        assert [(r.assignment, r.reason) for r in result.rejected] == [(second, CLAIMED_IN_BATCH)]

    def test_occupied_and_unknown_seats_are_rejected(self):
        layout = get_layout("custom_5")
        requests = [SeatAssignment(1), SeatAssignment(3), SeatAssignment(8)]
        result = assign_distinct_seats(layout, {3}, requests)
        assert [a.seat_number for a in result.accepted] == [1]
        assert {r.assignment.seat_number: r.reason for r in result.rejected} == {3: OCCUPIED, 8: NOT_IN_LAYOUT}
        assert not result.ok

    def test_validation_error_outranks_conflict(self):
        layout = get_layout("custom_5")
        result = assign_distinct_seats(layout, {3}, [SeatAssignment(3), SeatAssignment(9)])
        with pytest.raises(ValidationError):
            result.raise_for_rejections()

    def test_conflict_raised_for_occupied(self):
        layout = get_layout("custom_5")
        result = assign_distinct_seats(layout, {3}, [SeatAssignment(3)])
        with pytest.raises(SeatConflictError) as exc:
            result.raise_for_rejections(trip_id=7)
        assert exc.value.details == {"seats": [3], "trip_id": 7}


# =====================================================================
# Engine + storage boundary
# =====================================================================

class TestSeatAllocationEngine:

    def test_commit_single_seat(self, test_db, test_trip):
        engine = SeatAllocationEngine(test_db)
        registrations = engine.commit(test_trip.trip_id, [SeatAssignment(4, participant())])
        assert len(registrations) == 1
        registration = registrations[0]
        assert registration.seat_number == 4
        assert registration.is_multi_seat is False
        assert registration.seat_count == 1
        assert registration.booking_group_id is None
        assert engine.occupied_seats(test_trip.trip_id) == {4}

    def test_commit_multi_seat_booking(self, test_db, test_trip):
        engine = SeatAllocationEngine(test_db)
        registrations = engine.commit(
            test_trip.trip_id,
            [SeatAssignment(5, participant("Ana")), SeatAssignment(6, participant("Ben"))],
            shared_fields={"paid": True},
        )
        assert [r.seat_number for r in registrations] == [5, 6]
        assert all(r.is_multi_seat and r.seat_count == 2 and r.paid for r in registrations)
        assert registrations[0].booking_group_id == registrations[1].booking_group_id is not None

    def test_commit_rejects_taken_seat_and_writes_nothing(self, test_db, test_trip, make_registration):
        make_registration(test_trip.trip_id, 3)
        engine = SeatAllocationEngine(test_db)
        with pytest.raises(SeatConflictError) as exc:
            engine.commit(
                test_trip.trip_id,
                [SeatAssignment(2, participant("Ana")), SeatAssignment(3, participant("Ben"))],
            )
        assert exc.value.seats == [3]
        assert engine.occupied_seats(test_trip.trip_id) == {3}

    def test_commit_reports_seat_taken_since_snapshot(self, test_db, test_trip, make_registration):
        make_registration(test_trip.trip_id, 3)
        engine = SeatAllocationEngine(test_db)
        with pytest.raises(SeatConflictError) as exc:
            engine.commit(test_trip.trip_id, [SeatAssignment(3, participant())], expected_occupied=[])
        assert "just taken" in exc.value.message

    def test_commit_seat_outside_layout(self, test_db, small_trip):
        with pytest.raises(ValidationError):
            SeatAllocationEngine(test_db).commit(small_trip.trip_id, [SeatAssignment(6, participant())])

    def test_commit_duplicate_seat_in_batch(self, test_db, test_trip):
        with pytest.raises(SeatConflictError):
            SeatAllocationEngine(test_db).commit(
                test_trip.trip_id,
                [SeatAssignment(2, participant("Ana")), SeatAssignment(2, participant("Ben"))],
            )
        assert test_db.query(Registration).count() == 0

    def test_commit_missing_participant_details(self, test_db, test_trip):
        with pytest.raises(ValidationError) as exc:
            SeatAllocationEngine(test_db).commit(
                test_trip.trip_id, [SeatAssignment(2, {"first_name": "Ana", "last_name": "Lee"})]
            )
        assert exc.value.details["missing_fields"] == ["email", "phone"]

    def test_commit_unknown_trip(self, test_db):
        with pytest.raises(NotFoundError) as exc:
            SeatAllocationEngine(test_db).commit(999, [SeatAssignment(1, participant())])
        assert exc.value.error_code == "TRIP_NOT_FOUND"

    def test_freed_seat_can_be_booked_again(self, test_db, test_trip, make_registration):
        registration = make_registration(test_trip.trip_id, 7)
        registration_crud.remove(test_db, db_obj=registration)
        test_db.commit()
        registrations = SeatAllocationEngine(test_db).commit(test_trip.trip_id, [SeatAssignment(7, participant())])
        assert registrations[0].seat_number == 7

    def test_reserve_block_uses_live_occupancy(self, test_db, small_trip, make_registration):
        make_registration(small_trip.trip_id, 2)
        engine = SeatAllocationEngine(test_db)
        assert engine.reserve_block(small_trip.trip_id, 3, 3) == (3, 4, 5)
        with pytest.raises(SeatConflictError) as exc:
            engine.reserve_block(small_trip.trip_id, 1, 2)
        assert exc.value.details["trip_id"] == small_trip.trip_id

    def test_seat_map(self, test_db, small_trip, make_registration):
        make_registration(small_trip.trip_id, 2)
        seat_map = SeatAllocationEngine(test_db).seat_map(small_trip.trip_id)
        assert seat_map["occupied_seats"] == [2]
        assert seat_map["available_seats"] == [1, 3, 4, 5]
        assert seat_map["available_count"] == 4


class TestCommitIfSeatsFree:

    def test_unique_constraint_catches_a_lost_race(self, test_db, test_trip, make_registration, monkeypatch):
        """A commit whose occupancy read missed a concurrent insert still fails cleanly"""
        make_registration(test_trip.trip_id, 3)
        monkeypatch.setattr(registration_crud, "occupied_seats", lambda db, trip_id: set())

        row = dict(participant(), seat_number=3)
        with pytest.raises(SeatConflictError) as exc:
            registration_crud.commit_if_seats_free(test_db, trip_id=test_trip.trip_id, rows=[row])
        assert "just taken" in exc.value.message

        monkeypatch.undo()
        seats = [r.seat_number for r in registration_crud.list_by_trip(test_db, trip_id=test_trip.trip_id)]
        assert seats == [3]

    def test_sequential_commits_never_share_a_seat(self, test_db, test_trip):
        engine = SeatAllocationEngine(test_db)
        outcomes = []
        for name, seat in [("Ana", 1), ("Ben", 1), ("Cy", 2), ("Di", 2), ("Ed", 3)]:
            try:
                engine.commit(test_trip.trip_id, [SeatAssignment(seat, participant(name))])
                outcomes.append((name, "ok"))
            except SeatConflictError:
                outcomes.append((name, "conflict"))

        assert [o for _, o in outcomes] == ["ok", "conflict", "ok", "conflict", "ok"]
        seats = [r.seat_number for r in registration_crud.list_by_trip(test_db, trip_id=test_trip.trip_id)]
        assert len(seats) == len(set(seats)) == 3
