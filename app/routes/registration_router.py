from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import TripSeatError, NotFoundError
from app.crud.registration import registration_crud
from app.database.session import get_db
from app.models.registration import Registration
from app.schemas.registration import (
    AdminRegistrationCreate,
    RegistrationSubmit,
    RegistrationUpdate,
    RegistrationResponse,
)
from app.services.notification_service import (
    RegistrationNotifier,
    get_registration_notifier,
    registration_snapshot,
    trip_snapshot,
)
from app.services.seat_allocation import SeatAllocationEngine, SeatAssignment
from app.utils.response_utils import ResponseWrapper, handle_db_error, handle_domain_error, handle_http_error
from common_utils.auth.permission_checker import PermissionChecker
from app.core.logging_config import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["registrations"])

CONTACT_FIELDS = ("first_name", "last_name", "email", "phone")


def get_registration_or_404(db: Session, registration_id: int) -> Registration:
    registration = registration_crud.get_by_id(db, registration_id=registration_id)
    if not registration:
        raise NotFoundError("registration", registration_id)
    return registration


def _schedule_notifications(
    background_tasks: BackgroundTasks,
    notifier: RegistrationNotifier,
    trip: dict,
    registrations: list,
) -> None:
    """
    Queue confirmation emails for committed registrations.

    The registrations are already durable here, so a failure only costs the
    emails and is logged instead of raised.
    """
    try:
        background_tasks.add_task(
            notifier.notify_registrations,
            [registration_snapshot(r) for r in registrations],
            trip,
        )
    except Exception as e:
        logger.exception(f"Could not queue notifications for trip {trip['trip_id']}: {e}")


# ---------------------------
# PUBLIC REGISTRATION
# ---------------------------
@router.post("/trips/{trip_id}/registrations", response_model=dict, status_code=status.HTTP_201_CREATED)
def submit_registration(
    trip_id: int,
    registration_in: RegistrationSubmit,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: RegistrationNotifier = Depends(get_registration_notifier),
):
    """
    Public registration form submit.

    Every passenger gets their own registration; a booking of several seats
    is committed all or nothing. A seat taken in the meantime answers 409 so
    the form can refresh the seat map and ask again.
    """
    try:
        engine = SeatAllocationEngine(db)
        trip = trip_snapshot(engine.get_trip(trip_id))
        assignments = [
            SeatAssignment(
                seat_number=passenger.seat_number,
                participant=passenger.model_dump(include=set(CONTACT_FIELDS)),
            )
            for passenger in registration_in.passengers
        ]
        registrations = engine.commit(
            trip_id,
            assignments,
            expected_occupied=registration_in.expected_occupied,
            shared_fields={
                "payment_method": registration_in.payment_method,
                "paid": False,
                "signature_data": registration_in.signature_data,
                "agreed_to_cancellation_policy": registration_in.agreed_to_cancellation_policy,
                "agreed_to_waiver": registration_in.agreed_to_waiver,
            },
        )
        _schedule_notifications(background_tasks, notifier, trip, registrations)

        return ResponseWrapper.created(
            data={
                "registrations": [RegistrationResponse.model_validate(r) for r in registrations],
                "booking_group_id": registrations[0].booking_group_id,
            },
            message=f"Registered {len(registrations)} seat(s) successfully",
        )

    except TripSeatError as e:
        db.rollback()
        logger.info(f"Registration for trip {trip_id} rejected: {e.error_code} {e.message}")
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"DB error while registering for trip {trip_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Unexpected error registering for trip {trip_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# ADMIN ADD
# ---------------------------
@router.post("/trips/{trip_id}/registrations/admin", response_model=dict, status_code=status.HTTP_201_CREATED)
def add_participant(
    trip_id: int,
    participant_in: AdminRegistrationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: RegistrationNotifier = Depends(get_registration_notifier),
    user_data=Depends(PermissionChecker(["registration.create"])),
):
    """Admin adds one participant to a seat; same conditional write as the public form."""
    try:
        engine = SeatAllocationEngine(db)
        trip = trip_snapshot(engine.get_trip(trip_id))
        registrations = engine.commit(
            trip_id,
            [
                SeatAssignment(
                    seat_number=participant_in.seat_number,
                    participant=participant_in.model_dump(include=set(CONTACT_FIELDS)),
                )
            ],
            added_by_admin=True,
            shared_fields={
                "payment_method": participant_in.payment_method,
                "paid": participant_in.paid,
                "agreed_to_cancellation_policy": True,
                "agreed_to_waiver": True,
            },
        )
        _schedule_notifications(background_tasks, notifier, trip, registrations)

        logger.info(
            f"Participant added to seat #{participant_in.seat_number} on trip {trip_id} "
            f"by user {user_data.get('user_id')}"
        )
        return ResponseWrapper.created(
            data={"registration": RegistrationResponse.model_validate(registrations[0])},
            message="Participant added successfully",
        )

    except TripSeatError as e:
        db.rollback()
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"DB error while adding participant to trip {trip_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Unexpected error adding participant to trip {trip_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# LIST BY TRIP
# ---------------------------
@router.get("/trips/{trip_id}/registrations", response_model=dict, status_code=status.HTTP_200_OK)
def get_trip_registrations(
    trip_id: int,
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["registration.read"])),
):
    """Registrations of a trip by seat number; also works for a deleted trip's orphans."""
    try:
        items = registration_crud.list_by_trip(db, trip_id=trip_id)
        return ResponseWrapper.success(
            data={
                "items": [RegistrationResponse.model_validate(r) for r in items],
                "total": len(items),
                "paid": sum(1 for r in items if r.paid),
            },
            message=f"Registrations for trip {trip_id} fetched successfully",
        )

    except SQLAlchemyError as e:
        logger.exception(f"DB error while fetching registrations for trip {trip_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching registrations for trip {trip_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# GET BY ID
# ---------------------------
@router.get("/registrations/{registration_id}", response_model=dict, status_code=status.HTTP_200_OK)
def get_registration(
    registration_id: int,
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["registration.read"])),
):
    try:
        registration = get_registration_or_404(db, registration_id)
        return ResponseWrapper.success(
            data={"registration": RegistrationResponse.model_validate(registration)},
            message=f"Registration {registration_id} fetched successfully",
        )

    except TripSeatError as e:
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        logger.exception(f"DB error while fetching registration {registration_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching registration {registration_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# UPDATE
# ---------------------------
@router.put("/registrations/{registration_id}", response_model=dict, status_code=status.HTTP_200_OK)
def update_registration(
    registration_id: int,
    update_in: RegistrationUpdate,
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["registration.update"])),
):
    """Partial update of contact and payment details. Seats cannot be changed here."""
    try:
        registration = get_registration_or_404(db, registration_id)
        update_data = update_in.model_dump(exclude_unset=True)
        registration = registration_crud.update_registration(db, db_obj=registration, obj_in=update_in)
        db.commit()
        db.refresh(registration)

        logger.info(
            f"Registration {registration_id} updated by user {user_data.get('user_id')} "
            f"with fields={list(update_data)}"
        )
        return ResponseWrapper.success(
            data={"registration": RegistrationResponse.model_validate(registration)},
            message="Registration updated successfully",
        )

    except TripSeatError as e:
        db.rollback()
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"DB error while updating registration {registration_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Unexpected error updating registration {registration_id}: {e}")
        raise handle_http_error(e)


@router.patch("/registrations/{registration_id}/toggle-paid", response_model=dict, status_code=status.HTTP_200_OK)
def toggle_registration_paid(
    registration_id: int,
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["registration.update"])),
):
    try:
        registration = get_registration_or_404(db, registration_id)
        registration = registration_crud.toggle_paid(db, db_obj=registration)
        db.commit()
        db.refresh(registration)

        logger.info(f"Registration {registration_id} marked paid={registration.paid} by user {user_data.get('user_id')}")
        return ResponseWrapper.success(
            data={"registration": RegistrationResponse.model_validate(registration)},
            message=f"Registration marked as {'paid' if registration.paid else 'unpaid'}",
        )

    except TripSeatError as e:
        db.rollback()
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"DB error while toggling payment on registration {registration_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Unexpected error toggling payment on registration {registration_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# DELETE
# ---------------------------
@router.delete("/registrations/{registration_id}", response_model=dict, status_code=status.HTTP_200_OK)
def delete_registration(
    registration_id: int,
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["registration.delete"])),
):
    """Hard delete; the seat is free again immediately."""
    try:
        registration = get_registration_or_404(db, registration_id)
        trip_id, seat_number = registration.trip_id, registration.seat_number
        registration_crud.remove(db, db_obj=registration)
        db.commit()

        logger.info(
            f"Registration {registration_id} deleted, seat #{seat_number} on trip {trip_id} freed "
            f"by user {user_data.get('user_id')}"
        )
        return ResponseWrapper.deleted(
            message="Registration deleted successfully",
            data={"registration_id": registration_id, "trip_id": trip_id, "seat_number": seat_number},
        )

    except TripSeatError as e:
        db.rollback()
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"DB error while deleting registration {registration_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Unexpected error deleting registration {registration_id}: {e}")
        raise handle_http_error(e)
