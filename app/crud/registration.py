from typing import Optional, List, Dict, Any, Iterable, Set
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.models.registration import Registration
from app.schemas.registration import AdminRegistrationCreate, RegistrationUpdate
from app.crud.base import CRUDBase
from app.crud.trip import trip_crud
from app.core.exceptions import NotFoundError, SeatConflictError, StorageError
from app.core.logging_config import get_logger

logger = get_logger(__name__)


class CRUDRegistration(CRUDBase[Registration, AdminRegistrationCreate, RegistrationUpdate]):

    def get_by_id(self, db: Session, *, registration_id: int) -> Optional[Registration]:
        return db.query(Registration).filter(Registration.registration_id == registration_id).first()

    def list_by_trip(self, db: Session, *, trip_id: int) -> List[Registration]:
        return (
            db.query(Registration)
            .filter(Registration.trip_id == trip_id)
            .order_by(Registration.seat_number)
            .all()
        )

    def occupied_seats(self, db: Session, *, trip_id: int) -> Set[int]:
        rows = db.query(Registration.seat_number).filter(Registration.trip_id == trip_id).all()
        return {row[0] for row in rows}

    def commit_if_seats_free(
        self,
        db: Session,
        *,
        trip_id: int,
        rows: List[Dict[str, Any]],
        expected_occupied: Optional[Iterable[int]] = None,
    ) -> List[Registration]:
        """
        Atomically insert one registration per row, or none.

        The trip row is locked, occupancy is re-read inside the transaction and
        the insert only proceeds when every requested seat is still free. The
        (trip_id, seat_number) unique constraint backs this up on databases
        without row locks. ``expected_occupied`` is the occupancy the caller
        saw; seats taken since then are reported as just taken.
        """
        requested = [row["seat_number"] for row in rows]
        try:
            trip = trip_crud.get_for_update(db, trip_id=trip_id)
            if trip is None:
                raise NotFoundError("trip", trip_id)

            taken = self.occupied_seats(db, trip_id=trip_id) & set(requested)
            if taken:
                raise SeatConflictError(
                    taken,
                    message=self._conflict_message(taken, expected_occupied),
                    trip_id=trip_id,
                )

            registrations = [Registration(trip_id=trip_id, **row) for row in rows]
            db.add_all(registrations)
            db.flush()
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Seat commit for trip {trip_id} lost a race on seats {requested}: {e.orig}")
            raise SeatConflictError(
                requested,
                message="One of the selected seats was just taken, please choose again",
                trip_id=trip_id,
            )
        except (NotFoundError, SeatConflictError):
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Storage failure committing seats {requested} for trip {trip_id}: {e}")
            raise StorageError("Could not save the registration, please retry", details={"trip_id": trip_id})

        for registration in registrations:
            db.refresh(registration)
        return registrations

    @staticmethod
    def _conflict_message(taken: Set[int], expected_occupied: Optional[Iterable[int]]) -> str:
        seat_list = ", ".join(f"#{seat}" for seat in sorted(taken))
        if expected_occupied is not None and taken - set(expected_occupied):
            return f"Seat(s) {seat_list} were just taken by another registration"
        return f"Seat(s) {seat_list} already taken"

    def update_registration(self, db: Session, *, db_obj: Registration, obj_in: RegistrationUpdate) -> Registration:
        return self.update(db, db_obj=db_obj, obj_in=obj_in.model_dump(exclude_unset=True))

    def toggle_paid(self, db: Session, *, db_obj: Registration) -> Registration:
        db_obj.paid = not db_obj.paid
        db.add(db_obj)
        db.flush()
        return db_obj


registration_crud = CRUDRegistration(Registration)
