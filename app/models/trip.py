from sqlalchemy import Column, Integer, String, DateTime, Enum, JSON
from app.database.session import Base
from enum import Enum as PyEnum

from common_utils import utc_now


class TripStatusEnum(str, PyEnum):
    PLANNED = "planned"
    SCHEDULED = "scheduled"
    DONE = "done"


class Trip(Base):
    __tablename__ = "trips"
    __table_args__ = {'extend_existing': True, 'sqlite_autoincrement': True}

    trip_id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    date = Column(DateTime, nullable=False, index=True)  # naive UTC
    driver_name = Column(String(150), nullable=True)

    vehicle_layout = Column(String(50), nullable=False, default="sprinter_15")
    custom_seat_ids = Column(JSON, nullable=True)  # explicit seat ids for a custom layout

    status = Column(
        Enum(TripStatusEnum, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=TripStatusEnum.PLANNED,
        nullable=False,
        index=True
    )
    whatsapp_group_link = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Registrations reference trips by trip_id only; there is no FK so that
    # registrations may outlive a deleted trip (see TRIP_DELETE_CASCADE).
