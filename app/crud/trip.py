from datetime import date, datetime
from typing import Optional, List, Tuple, Union
from sqlalchemy.orm import Session

from app.models.trip import Trip
from app.models.registration import Registration
from app.schemas.trip import TripCreate, TripUpdate
from app.crud.base import CRUDBase
from app.core.logging_config import get_logger
from common_utils import local_day_bounds, to_storage_datetime

logger = get_logger(__name__)


class CRUDTrip(CRUDBase[Trip, TripCreate, TripUpdate]):

    def get_by_id(self, db: Session, *, trip_id: int) -> Optional[Trip]:
        return db.query(Trip).filter(Trip.trip_id == trip_id).first()

    def get_for_update(self, db: Session, *, trip_id: int) -> Optional[Trip]:
        """Fetch the trip row with a write lock; the serialization point for seat commits"""
        return (
            db.query(Trip)
            .filter(Trip.trip_id == trip_id)
            .with_for_update()
            .first()
        )

    def list_by_date(self, db: Session, *, day: Union[date, datetime]) -> List[Trip]:
        """Trips on a local calendar day, both ends of the day inclusive"""
        start, end = local_day_bounds(day)
        return (
            db.query(Trip)
            .filter(Trip.date >= start, Trip.date <= end)
            .order_by(Trip.date, Trip.trip_id)
            .all()
        )

    def create(self, db: Session, *, obj_in: TripCreate) -> Trip:
        data = obj_in.model_dump()
        data["date"] = to_storage_datetime(data["date"])
        db_obj = Trip(**data)
        db.add(db_obj)
        db.flush()
        return db_obj

    def update_trip(self, db: Session, *, db_obj: Trip, obj_in: TripUpdate) -> Trip:
        update_data = obj_in.model_dump(exclude_unset=True)
        if update_data.get("date") is not None:
            update_data["date"] = to_storage_datetime(update_data["date"])
        return self.update(db, db_obj=db_obj, obj_in=update_data)

    def delete_trip(self, db: Session, *, db_obj: Trip, cascade: bool) -> Tuple[Trip, int]:
        """
        Delete a trip.

        Returns the trip and the number of registrations affected: deleted
        when ``cascade`` is set, otherwise left in place as orphans.
        """
        registrations = db.query(Registration).filter(Registration.trip_id == db_obj.trip_id)
        if cascade:
            affected = registrations.delete(synchronize_session=False)
        else:
            affected = registrations.count()
        db.delete(db_obj)
        db.flush()
        return db_obj, affected


trip_crud = CRUDTrip(Trip)
