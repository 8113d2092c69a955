from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Boolean, Enum,
    ForeignKey, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from app.database.session import Base
from enum import Enum as PyEnum

from common_utils import utc_now


class GiftCardSourceEnum(str, PyEnum):
    ADMIN = "admin"        # issued directly from the dashboard
    PURCHASE = "purchase"  # self-service purchase page


class GiftCard(Base):
    __tablename__ = "gift_cards"
    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_gift_card_amount_positive"),
        CheckConstraint(
            "remaining_balance_cents IS NULL OR "
            "(remaining_balance_cents >= 0 AND remaining_balance_cents <= amount_cents)",
            name="ck_gift_card_balance_range",
        ),
        {"extend_existing": True},
    )

    gift_card_id = Column(Integer, primary_key=True, index=True)
    barcode_id = Column(String(32), nullable=False, unique=True, index=True)

    recipient_name = Column(String(150), nullable=False)
    recipient_email = Column(String(255), nullable=True)
    sender_name = Column(String(150), nullable=False)
    sender_email = Column(String(255), nullable=True)
    message = Column(Text, nullable=True)

    # Money is held in integer cents
    amount_cents = Column(Integer, nullable=False)
    remaining_balance_cents = Column(Integer, nullable=True)  # NULL only on rows never redeemed

    expiry_date = Column(DateTime, nullable=False)
    redeemed = Column(Boolean, default=False, nullable=False)
    redeemed_at = Column(DateTime, nullable=True)

    source = Column(
        Enum(GiftCardSourceEnum, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=GiftCardSourceEnum.ADMIN,
        nullable=False,
    )
    payment_method = Column(String(20), nullable=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)

    # Relationships
    usage_history = relationship(
        "GiftCardUsage",
        back_populates="gift_card",
        order_by="GiftCardUsage.sequence",
        cascade="all, delete-orphan",
    )

    @property
    def effective_balance_cents(self) -> int:
        """Remaining balance, defaulting to the face value for untouched cards"""
        if self.remaining_balance_cents is None:
            return self.amount_cents
        return self.remaining_balance_cents


class GiftCardUsage(Base):
    """One redemption event; rows are appended, never edited"""

    __tablename__ = "gift_card_usages"
    __table_args__ = (
        UniqueConstraint("gift_card_id", "sequence", name="uq_gift_card_usage_sequence"),
        CheckConstraint("amount_used_cents > 0", name="ck_gift_card_usage_amount_positive"),
        CheckConstraint("remaining_after_cents >= 0", name="ck_gift_card_usage_remaining"),
        {"extend_existing": True},
    )

    usage_id = Column(Integer, primary_key=True, index=True)
    gift_card_id = Column(Integer, ForeignKey("gift_cards.gift_card_id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)

    date = Column(DateTime, nullable=False)  # day of the trip the card paid for
    trip_name = Column(String(200), nullable=False)
    number_of_people = Column(Integer, nullable=False, default=1)
    amount_used_cents = Column(Integer, nullable=False)
    remaining_after_cents = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    used_at = Column(DateTime, default=utc_now, nullable=False)

    gift_card = relationship("GiftCard", back_populates="usage_history")
