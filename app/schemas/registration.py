import re
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, EmailStr, Field, ConfigDict, computed_field, field_validator, model_validator

from app.models.registration import PaymentMethodEnum

PHONE_REGEX = r'^\+?[0-9\s\-()]{7,20}$'
MAX_SEATS_PER_BOOKING = 10


class ContactValidatorsMixin:
    """Reusable validators for participant contact fields."""

    @field_validator("first_name", "last_name", check_fields=False)
    def validate_name(cls, v: Optional[str]):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        return v

    @field_validator("phone", check_fields=False)
    def validate_phone(cls, v: Optional[str]):
        if v is None:
            return v
        v = v.strip()
        if not re.match(PHONE_REGEX, v):
            raise ValueError("Phone number is invalid")
        return v


class PassengerIn(BaseModel, ContactValidatorsMixin):
    first_name: str = Field(..., max_length=100)
    last_name: str = Field(..., max_length=100)
    email: EmailStr
    phone: str
    seat_number: int = Field(..., ge=1)


class RegistrationSubmit(BaseModel):
    """Public self-registration: one or more passengers booked together"""
    passengers: List[PassengerIn] = Field(..., min_length=1, max_length=MAX_SEATS_PER_BOOKING)
    payment_method: PaymentMethodEnum = PaymentMethodEnum.ON_TRIP
    signature_data: str = Field(..., min_length=1, description="Signature image as a data URL")
    agreed_to_cancellation_policy: bool
    agreed_to_waiver: bool
    expected_occupied: Optional[List[int]] = Field(
        None, description="Occupied seats as last shown to the registrant"
    )

    @model_validator(mode="after")
    def validate_agreements(self):
        if not self.agreed_to_cancellation_policy:
            raise ValueError("You must agree to the cancellation policy")
        if not self.agreed_to_waiver:
            raise ValueError("You must sign the waiver")
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "passengers": [
                    {"first_name": "Ana", "last_name": "Lee", "email": "ana@example.com",
                     "phone": "+1 555 0100", "seat_number": 3},
                ],
                "payment_method": "on-trip",
                "signature_data": "data:image/png;base64,iVBORw0...",
                "agreed_to_cancellation_policy": True,
                "agreed_to_waiver": True,
            }
        }
    )


class AdminRegistrationCreate(BaseModel, ContactValidatorsMixin):
    first_name: str = Field(..., max_length=100)
    last_name: str = Field(..., max_length=100)
    email: EmailStr
    phone: str
    seat_number: int = Field(..., ge=1)
    payment_method: PaymentMethodEnum = PaymentMethodEnum.ON_TRIP
    paid: bool = False


class RegistrationUpdate(BaseModel, ContactValidatorsMixin):
    """Seat changes are not allowed here; delete and re-register instead"""
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    paid: Optional[bool] = None
    payment_method: Optional[PaymentMethodEnum] = None


class RegistrationResponse(BaseModel):
    registration_id: int
    trip_id: int
    booking_group_id: Optional[str] = None
    first_name: str
    last_name: str
    email: str
    phone: str
    seat_number: int
    is_multi_seat: bool
    seat_count: int
    payment_method: PaymentMethodEnum
    paid: bool
    agreed_to_cancellation_policy: bool
    agreed_to_waiver: bool
    added_by_admin: bool
    registration_date: datetime
    signature_data: Optional[str] = Field(None, exclude=True)

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def has_signature(self) -> bool:
        # signature blobs are large; expose only whether one exists
        return bool(self.signature_data)
