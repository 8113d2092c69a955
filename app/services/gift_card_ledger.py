"""
Gift card ledger.

Balances are integer cents. A card's balance only ever goes down, and only
through ``redeem``, which appends a usage record in the same transaction.
"""
import secrets
import string
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import InvalidAmountError, NotFoundError, ValidationError
from app.core.logging_config import get_logger
from app.crud.gift_card import gift_card_crud
from app.models.gift_card import GiftCard, GiftCardSourceEnum, GiftCardUsage
from common_utils import to_storage_datetime, utc_now

logger = get_logger(__name__)

BARCODE_ALPHABET = string.ascii_uppercase + string.digits
BARCODE_RANDOM_LENGTH = 10

Amount = Union[Decimal, int, float, str]

# fits a 32-bit INTEGER column with room to spare
MAX_AMOUNT_CENTS = 100_000_000


class GiftCardStatus(str, Enum):
    ACTIVE = "active"
    PARTIALLY_USED = "partially_used"
    FULLY_REDEEMED = "fully_redeemed"
    EXPIRED = "expired"


@dataclass
class RedemptionResult:
    gift_card: GiftCard
    usage: GiftCardUsage
    new_balance_cents: int

    @property
    def new_balance(self) -> Decimal:
        return from_cents(self.new_balance_cents)


def to_cents(amount: Amount) -> int:
    """Convert a currency amount to integer cents, rounding half up"""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(f"'{amount}' is not a valid amount", details={"amount": str(amount)})
    if not value.is_finite():
        raise InvalidAmountError(f"'{amount}' is not a valid amount", details={"amount": str(amount)})
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))


def generate_barcode_id(prefix: Optional[str] = None) -> str:
    """Prefix plus 10 random uppercase alphanumerics, e.g. GC7KQ2M9XA1B"""
    prefix = prefix if prefix is not None else settings.GIFT_CARD_BARCODE_PREFIX
    return prefix + "".join(secrets.choice(BARCODE_ALPHABET) for _ in range(BARCODE_RANDOM_LENGTH))


def gift_card_status(card: GiftCard, now: Optional[datetime] = None) -> GiftCardStatus:
    """
    Derive the status of a card. Redemption state outranks expiry: a card
    used up before it expired stays fully redeemed.
    """
    now = now or utc_now()
    if card.redeemed or card.effective_balance_cents == 0:
        return GiftCardStatus.FULLY_REDEEMED
    if card.usage_history:
        return GiftCardStatus.PARTIALLY_USED
    if card.expiry_date < now:
        return GiftCardStatus.EXPIRED
    return GiftCardStatus.ACTIVE


class GiftCardLedger:
    def __init__(self, db: Session):
        self.db = db

    def issue(
        self,
        *,
        recipient_name: str,
        sender_name: str,
        amount: Amount,
        message: Optional[str] = None,
        expiry_date: Optional[Union[datetime, date]] = None,
        recipient_email: Optional[str] = None,
        sender_email: Optional[str] = None,
        source: GiftCardSourceEnum = GiftCardSourceEnum.ADMIN,
        payment_method: Optional[str] = None,
    ) -> GiftCard:
        now = utc_now()
        amount_cents = to_cents(amount)
        if amount_cents <= 0:
            raise ValidationError("Gift card amount must be greater than 0", details={"amount": str(amount)})
        if amount_cents > MAX_AMOUNT_CENTS:
            raise ValidationError(
                f"Gift card amount must not exceed {from_cents(MAX_AMOUNT_CENTS)}",
                details={"amount": str(amount), "max_amount_cents": MAX_AMOUNT_CENTS},
            )
        if not recipient_name or not recipient_name.strip():
            raise ValidationError("Recipient name is required")
        if not sender_name or not sender_name.strip():
            raise ValidationError("Sender name is required")

        if expiry_date is None:
            expiry = now + timedelta(days=settings.GIFT_CARD_DEFAULT_VALIDITY_DAYS)
        else:
            expiry = to_storage_datetime(expiry_date)
        if expiry <= now:
            raise ValidationError("Expiry date must be in the future", details={"expiry_date": expiry})

        card = gift_card_crud.create_card(
            self.db,
            values={
                "barcode_id": generate_barcode_id(),
                "recipient_name": recipient_name.strip(),
                "recipient_email": recipient_email,
                "sender_name": sender_name.strip(),
                "sender_email": sender_email,
                "message": message or settings.GIFT_CARD_DEFAULT_MESSAGE,
                "amount_cents": amount_cents,
                "remaining_balance_cents": amount_cents,
                "expiry_date": expiry,
                "redeemed": False,
                "source": source,
                "payment_method": payment_method,
                "created_at": now,
            },
        )
        logger.info(
            f"Issued gift card {card.barcode_id} (id={card.gift_card_id}) for {from_cents(amount_cents)} "
            f"from {card.sender_name} to {card.recipient_name}"
        )
        return card

    def purchase(
        self,
        *,
        amount: Amount,
        recipient_name: str,
        recipient_email: str,
        sender_name: str,
        sender_email: str,
        message: Optional[str] = None,
        payment_method: str = "card",
    ) -> GiftCard:
        """Self-service purchase: valid for the default period, payment only recorded"""
        return self.issue(
            recipient_name=recipient_name,
            sender_name=sender_name,
            amount=amount,
            message=message,
            recipient_email=recipient_email,
            sender_email=sender_email,
            source=GiftCardSourceEnum.PURCHASE,
            payment_method=payment_method,
        )

    def get(self, gift_card_id: int) -> GiftCard:
        card = gift_card_crud.get_by_id(self.db, gift_card_id=gift_card_id)
        if card is None:
            raise NotFoundError("gift_card", gift_card_id)
        return card

    def get_by_barcode(self, barcode_id: str) -> GiftCard:
        card = gift_card_crud.get_by_barcode(self.db, barcode_id=barcode_id)
        if card is None:
            raise NotFoundError("gift_card", barcode_id)
        return card

    def list(self, status: Optional[GiftCardStatus] = None, now: Optional[datetime] = None) -> List[GiftCard]:
        cards = gift_card_crud.list_all(self.db)
        if status is None:
            return cards
        now = now or utc_now()
        return [card for card in cards if gift_card_status(card, now) == status]

    def status(self, card: GiftCard, now: Optional[datetime] = None) -> GiftCardStatus:
        return gift_card_status(card, now)

    def redeem(
        self,
        gift_card_id: int,
        amount_to_use: Amount,
        *,
        trip_name: str,
        trip_date: Union[date, datetime],
        number_of_people: int = 1,
        notes: Optional[str] = None,
    ) -> RedemptionResult:
        """
        Spend part or all of a card's balance on a trip.

        Raises InvalidAmountError when the amount is not positive or exceeds
        the balance; the card and its history are then left untouched.
        """
        amount_cents = to_cents(amount_to_use)
        if amount_cents <= 0:
            raise InvalidAmountError(
                "Amount must be greater than 0",
                details={"amount_cents": amount_cents},
            )
        if not trip_name or not trip_name.strip():
            raise ValidationError("Trip name is required")
        if number_of_people < 1:
            raise ValidationError("Number of people must be at least 1")

        usage_values: Dict[str, Any] = {
            "date": to_storage_datetime(trip_date),
            "trip_name": trip_name.strip(),
            "number_of_people": number_of_people,
            "notes": notes,
        }
        card, usage = gift_card_crud.append_usage_if_balance(
            self.db,
            gift_card_id=gift_card_id,
            amount_cents=amount_cents,
            usage_values=usage_values,
            now=utc_now(),
        )
        logger.info(
            f"Redeemed {from_cents(amount_cents)} on gift card {card.barcode_id} for '{usage.trip_name}', "
            f"remaining {from_cents(usage.remaining_after_cents)}"
        )
        return RedemptionResult(gift_card=card, usage=usage, new_balance_cents=usage.remaining_after_cents)

    def delete(self, gift_card_id: int) -> str:
        """Hard delete; the usage history goes with the card. Returns the barcode"""
        card = self.get(gift_card_id)
        barcode_id = card.barcode_id
        gift_card_crud.remove(self.db, db_obj=card)
        self.db.commit()
        logger.info(f"Deleted gift card {barcode_id} (id={gift_card_id})")
        return barcode_id
