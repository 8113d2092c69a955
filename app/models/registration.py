from sqlalchemy import (
    Column, Integer, String, DateTime, Enum, Text, Boolean, UniqueConstraint
)
from app.database.session import Base
from enum import Enum as PyEnum

from common_utils import utc_now


class PaymentMethodEnum(str, PyEnum):
    CARD = "card"
    ON_TRIP = "on-trip"


class Registration(Base):
    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("trip_id", "seat_number", name="uq_registration_trip_seat"),
        {"extend_existing": True},
    )

    registration_id = Column(Integer, primary_key=True, index=True)

    # Scope
    trip_id = Column(Integer, nullable=False, index=True)
    booking_group_id = Column(String(36), nullable=True, index=True)  # shared by multi-seat siblings

    # Participant
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)

    # Seat
    seat_number = Column(Integer, nullable=False)
    is_multi_seat = Column(Boolean, default=False, nullable=False)
    seat_count = Column(Integer, default=1, nullable=False)

    # Payment
    payment_method = Column(
        Enum(PaymentMethodEnum, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=PaymentMethodEnum.ON_TRIP,
        nullable=False,
    )
    paid = Column(Boolean, default=False, nullable=False)

    # Waiver
    signature_data = Column(Text, nullable=True)
    agreed_to_cancellation_policy = Column(Boolean, default=False, nullable=False)
    agreed_to_waiver = Column(Boolean, default=False, nullable=False)

    added_by_admin = Column(Boolean, default=False, nullable=False)

    registration_date = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)
