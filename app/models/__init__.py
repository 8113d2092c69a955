# Import all models here for easier access
from app.models.trip import Trip, TripStatusEnum
from app.models.registration import Registration, PaymentMethodEnum
from app.models.gift_card import GiftCard, GiftCardUsage, GiftCardSourceEnum
