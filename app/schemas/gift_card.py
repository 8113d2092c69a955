from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator

from app.models.gift_card import GiftCardSourceEnum
from app.models.registration import PaymentMethodEnum


class NameValidatorsMixin:
    """Reusable validators for gift card models."""

    @field_validator("recipient_name", "sender_name", "trip_name", check_fields=False)
    def validate_required_text(cls, v: Optional[str]):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Field must not be empty")
        return v


class GiftCardCreate(BaseModel, NameValidatorsMixin):
    """Direct issue from the admin dashboard"""
    recipient_name: str = Field(..., max_length=150)
    sender_name: str = Field(..., max_length=150)
    amount: Decimal = Field(..., description="Face value, rounded to cents")
    message: Optional[str] = None
    expiry_date: Optional[datetime] = Field(None, description="Defaults to the configured validity period")
    recipient_email: Optional[EmailStr] = None
    sender_email: Optional[EmailStr] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "recipient_name": "Sam Rivera",
                "sender_name": "Jo Rivera",
                "amount": "150.00",
                "message": "Happy birthday!",
                "expiry_date": "2027-06-30T23:59:59",
            }
        }
    )


class GiftCardPurchase(BaseModel, NameValidatorsMixin):
    """Self-service purchase; the card entry is recorded, never charged"""
    amount: Decimal
    recipient_name: str = Field(..., max_length=150)
    recipient_email: EmailStr
    sender_name: str = Field(..., max_length=150)
    sender_email: EmailStr
    message: Optional[str] = None
    payment_method: PaymentMethodEnum = PaymentMethodEnum.CARD


class GiftCardRedeem(BaseModel, NameValidatorsMixin):
    # amount bounds are checked by the ledger against the live balance
    amount_to_use: Decimal
    trip_name: str = Field(..., max_length=200)
    trip_date: date
    number_of_people: int = Field(1, ge=1)
    notes: Optional[str] = None


class GiftCardUsageResponse(BaseModel):
    usage_id: int
    sequence: int
    date: datetime
    trip_name: str
    number_of_people: int
    amount_used_cents: int
    remaining_after_cents: int
    amount_used: float
    remaining_after: float
    notes: Optional[str] = None
    used_at: datetime

    @classmethod
    def from_model(cls, usage) -> "GiftCardUsageResponse":
        return cls(
            usage_id=usage.usage_id,
            sequence=usage.sequence,
            date=usage.date,
            trip_name=usage.trip_name,
            number_of_people=usage.number_of_people,
            amount_used_cents=usage.amount_used_cents,
            remaining_after_cents=usage.remaining_after_cents,
            amount_used=usage.amount_used_cents / 100,
            remaining_after=usage.remaining_after_cents / 100,
            notes=usage.notes,
            used_at=usage.used_at,
        )


class GiftCardResponse(BaseModel):
    gift_card_id: int
    barcode_id: str
    recipient_name: str
    recipient_email: Optional[str] = None
    sender_name: str
    sender_email: Optional[str] = None
    message: Optional[str] = None
    amount_cents: int
    remaining_balance_cents: int
    amount: float
    remaining_balance: float
    expiry_date: datetime
    redeemed: bool
    redeemed_at: Optional[datetime] = None
    source: GiftCardSourceEnum
    payment_method: Optional[str] = None
    status: str
    created_at: datetime
    usage_history: List[GiftCardUsageResponse] = []

    @classmethod
    def from_model(cls, card, status: str) -> "GiftCardResponse":
        balance = card.effective_balance_cents
        return cls(
            gift_card_id=card.gift_card_id,
            barcode_id=card.barcode_id,
            recipient_name=card.recipient_name,
            recipient_email=card.recipient_email,
            sender_name=card.sender_name,
            sender_email=card.sender_email,
            message=card.message,
            amount_cents=card.amount_cents,
            remaining_balance_cents=balance,
            amount=card.amount_cents / 100,
            remaining_balance=balance / 100,
            expiry_date=card.expiry_date,
            redeemed=card.redeemed,
            redeemed_at=card.redeemed_at,
            source=card.source,
            payment_method=card.payment_method,
            status=status,
            created_at=card.created_at,
            usage_history=[
                GiftCardUsageResponse.from_model(usage)
                for usage in card.usage_history
            ],
        )


class GiftCardRedeemResponse(BaseModel):
    gift_card_id: int
    new_balance_cents: int
    new_balance: float
    redeemed: bool
    status: str
    usage: GiftCardUsageResponse
