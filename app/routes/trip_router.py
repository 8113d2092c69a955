from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.core.exceptions import TripSeatError, NotFoundError
from app.crud.trip import trip_crud
from app.database.session import get_db
from app.models.trip import Trip
from app.schemas.trip import TripCreate, TripUpdate, TripResponse, SeatBlockRequest
from app.services.seat_allocation import SeatAllocationEngine
from app.services.vehicle_layouts import layout_for_trip
from app.utils.response_utils import ResponseWrapper, handle_db_error, handle_domain_error, handle_http_error
from common_utils.auth.permission_checker import PermissionChecker
from app.core.logging_config import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/trips", tags=["trips"])


def registration_link(trip_id: int) -> str:
    """Shareable link to the public registration form of a trip"""
    return f"{settings.FRONTEND_URL.rstrip('/')}/register/{trip_id}"


def serialize_trip(trip: Trip) -> dict:
    layout = layout_for_trip(trip)
    data = TripResponse.model_validate(trip, from_attributes=True).model_dump()
    data["registration_link"] = registration_link(trip.trip_id)
    data["total_seats"] = layout.total_seats
    data["layout_name"] = layout.name
    return data


def get_trip_or_404(db: Session, trip_id: int) -> Trip:
    trip = trip_crud.get_by_id(db, trip_id=trip_id)
    if not trip:
        raise NotFoundError("trip", trip_id)
    return trip


# ---------------------------
# CREATE
# ---------------------------
@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
def create_trip(
    trip_in: TripCreate,
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["trip.create"])),
):
    """Create a trip and return it with its shareable registration link."""
    try:
        db_obj = trip_crud.create(db, obj_in=trip_in)
        db.commit()
        db.refresh(db_obj)

        logger.info(
            f"Trip {db_obj.trip_id} '{db_obj.title}' created for {db_obj.date} by user {user_data.get('user_id')}"
        )
        return ResponseWrapper.created(
            data={"trip": serialize_trip(db_obj)},
            message="Trip created successfully",
        )

    except TripSeatError as e:
        db.rollback()
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"DB error while creating trip: {e}")
        raise handle_db_error(e)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Unexpected error creating trip: {e}")
        raise handle_http_error(e)


# ---------------------------
# LIST
# ---------------------------
@router.get("/", response_model=dict, status_code=status.HTTP_200_OK)
def get_trips(
    trip_date: Optional[date] = Query(None, alias="date", description="Local calendar day"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["trip.read"])),
):
    """List trips, optionally only those on one local calendar day."""
    try:
        if trip_date:
            items = trip_crud.list_by_date(db, day=trip_date)
        else:
            items = trip_crud.get_multi(db, skip=skip, limit=limit)

        logger.info(f"Fetched {len(items)} trips (date={trip_date})")
        return ResponseWrapper.success(
            data={"items": [serialize_trip(trip) for trip in items], "total": len(items)},
            message="Trips fetched successfully",
        )

    except SQLAlchemyError as e:
        logger.exception(f"DB error while fetching trips: {e}")
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching trips: {e}")
        raise handle_http_error(e)


# ---------------------------
# GET BY ID
# ---------------------------
@router.get("/{trip_id}", response_model=dict, status_code=status.HTTP_200_OK)
def get_trip(trip_id: int, db: Session = Depends(get_db)):
    """Public: the registration form shows the trip it registers for."""
    try:
        trip = get_trip_or_404(db, trip_id)
        return ResponseWrapper.success(
            data={"trip": serialize_trip(trip)},
            message=f"Trip {trip_id} fetched successfully",
        )

    except TripSeatError as e:
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        logger.exception(f"DB error while fetching trip {trip_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching trip {trip_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# UPDATE
# ---------------------------
@router.put("/{trip_id}", response_model=dict, status_code=status.HTTP_200_OK)
def update_trip(
    trip_id: int,
    update_in: TripUpdate,
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["trip.update"])),
):
    """Partial update; only the supplied fields change."""
    try:
        trip = get_trip_or_404(db, trip_id)
        update_data = update_in.model_dump(exclude_unset=True)
        trip = trip_crud.update_trip(db, db_obj=trip, obj_in=update_in)
        db.commit()
        db.refresh(trip)

        logger.info(f"Trip {trip_id} updated by user {user_data.get('user_id')} with fields={list(update_data)}")
        return ResponseWrapper.success(
            data={"trip": serialize_trip(trip)},
            message="Trip updated successfully",
        )

    except TripSeatError as e:
        db.rollback()
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"DB error while updating trip {trip_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Unexpected error updating trip {trip_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# DELETE
# ---------------------------
@router.delete("/{trip_id}", response_model=dict, status_code=status.HTTP_200_OK)
def delete_trip(
    trip_id: int,
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["trip.delete"])),
):
    """
    Delete a trip.

    With TRIP_DELETE_CASCADE off (the default) its registrations are kept
    and reported as orphaned; with it on they are deleted in the same
    transaction.
    """
    try:
        trip = get_trip_or_404(db, trip_id)
        cascade = settings.TRIP_DELETE_CASCADE
        _, affected = trip_crud.delete_trip(db, db_obj=trip, cascade=cascade)
        db.commit()

        if cascade:
            logger.info(f"Trip {trip_id} deleted with {affected} registrations by user {user_data.get('user_id')}")
            data = {"trip_id": trip_id, "deleted_registrations": affected, "orphaned_registrations": 0}
        else:
            if affected:
                logger.warning(f"Trip {trip_id} deleted, {affected} registrations kept as orphans")
            else:
                logger.info(f"Trip {trip_id} deleted by user {user_data.get('user_id')}")
            data = {"trip_id": trip_id, "deleted_registrations": 0, "orphaned_registrations": affected}

        return ResponseWrapper.deleted(message=f"Trip {trip_id} deleted successfully", data=data)

    except TripSeatError as e:
        db.rollback()
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"DB error while deleting trip {trip_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Unexpected error deleting trip {trip_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# SEATS
# ---------------------------
@router.get("/{trip_id}/seats", response_model=dict, status_code=status.HTTP_200_OK)
def get_trip_seats(trip_id: int, db: Session = Depends(get_db)):
    """Public: seat map with occupied and available seats."""
    try:
        seat_map = SeatAllocationEngine(db).seat_map(trip_id)
        return ResponseWrapper.success(data=seat_map, message=f"Seats for trip {trip_id} fetched successfully")

    except TripSeatError as e:
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        logger.exception(f"DB error while fetching seats for trip {trip_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching seats for trip {trip_id}: {e}")
        raise handle_http_error(e)


@router.post("/{trip_id}/seats/block", response_model=dict, status_code=status.HTTP_200_OK)
def check_seat_block(trip_id: int, block_in: SeatBlockRequest, db: Session = Depends(get_db)):
    """
    Public: check that a run of consecutive seats is free.

    Nothing is held; the seats are only taken when a registration commits.
    """
    try:
        seats = SeatAllocationEngine(db).reserve_block(trip_id, block_in.start_seat, block_in.count)
        return ResponseWrapper.success(
            data={"trip_id": trip_id, "seats": list(seats)},
            message=f"Seats {', '.join(f'#{s}' for s in seats)} are available",
        )

    except TripSeatError as e:
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        logger.exception(f"DB error while checking seats for trip {trip_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error checking seats for trip {trip_id}: {e}")
        raise handle_http_error(e)
