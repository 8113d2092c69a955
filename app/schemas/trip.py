from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict, field_validator

from app.models.trip import TripStatusEnum
from app.services.vehicle_layouts import is_known_layout_key


class BaseValidatorsMixin:
    """Reusable validators for Trip models."""

    @field_validator("title", check_fields=False)
    def validate_title(cls, v: Optional[str]):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Title must not be empty")
        return v

    @field_validator("custom_seat_ids", check_fields=False)
    def validate_custom_seat_ids(cls, v: Optional[List[int]]):
        if v is None:
            return v
        if not v:
            raise ValueError("custom_seat_ids must not be empty")
        if any(seat_id <= 0 for seat_id in v):
            raise ValueError("Seat ids must be positive integers")
        if len(set(v)) != len(v):
            raise ValueError("Seat ids must be unique")
        return v

    @field_validator("vehicle_layout", check_fields=False)
    def validate_vehicle_layout(cls, v: Optional[str]):
        # unknown keys are accepted and fall back at read time; custom keys are checked
        if v is None:
            return v
        v = v.strip()
        if v.startswith("custom_") and not is_known_layout_key(v):
            raise ValueError("Custom layout keys must look like custom_<seats>")
        return v

    @field_validator("whatsapp_group_link", check_fields=False)
    def validate_whatsapp_group_link(cls, v: Optional[str]):
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("WhatsApp group link must be an http(s) URL")
        return v or None


class TripBase(BaseModel, BaseValidatorsMixin):
    title: str = Field(..., max_length=200)
    date: datetime
    driver_name: Optional[str] = Field(None, max_length=150)
    vehicle_layout: str = Field("sprinter_15", max_length=50)
    custom_seat_ids: Optional[List[int]] = None
    status: TripStatusEnum = TripStatusEnum.PLANNED
    whatsapp_group_link: Optional[str] = Field(None, max_length=500)


class TripCreate(TripBase):

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Beach Trip",
                "date": "2026-07-04T09:00:00",
                "driver_name": "Alex",
                "vehicle_layout": "sprinter_15",
                "status": "planned",
                "whatsapp_group_link": "https://chat.whatsapp.com/abc123",
            }
        }
    )


class TripUpdate(BaseModel, BaseValidatorsMixin):
    title: Optional[str] = Field(None, max_length=200)
    date: Optional[datetime] = None
    driver_name: Optional[str] = Field(None, max_length=150)
    vehicle_layout: Optional[str] = Field(None, max_length=50)
    custom_seat_ids: Optional[List[int]] = None
    status: Optional[TripStatusEnum] = None
    whatsapp_group_link: Optional[str] = Field(None, max_length=500)


class TripResponse(TripBase):
    trip_id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SeatBlockRequest(BaseModel):
    start_seat: int
    count: int = Field(1, description="Number of consecutive seats")
