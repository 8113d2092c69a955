from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.models.gift_card import GiftCard, GiftCardUsage
from app.schemas.gift_card import GiftCardCreate, GiftCardRedeem
from app.crud.base import CRUDBase
from app.core.exceptions import InvalidAmountError, NotFoundError, StorageError
from app.core.logging_config import get_logger

logger = get_logger(__name__)


class CRUDGiftCard(CRUDBase[GiftCard, GiftCardCreate, GiftCardRedeem]):

    def get_by_id(self, db: Session, *, gift_card_id: int) -> Optional[GiftCard]:
        return db.query(GiftCard).filter(GiftCard.gift_card_id == gift_card_id).first()

    def get_by_barcode(self, db: Session, *, barcode_id: str) -> Optional[GiftCard]:
        return db.query(GiftCard).filter(GiftCard.barcode_id == barcode_id.strip().upper()).first()

    def list_all(self, db: Session) -> List[GiftCard]:
        return db.query(GiftCard).order_by(GiftCard.created_at.desc(), GiftCard.gift_card_id.desc()).all()

    def create_card(self, db: Session, *, values: Dict[str, Any]) -> GiftCard:
        db_obj = GiftCard(**values)
        db.add(db_obj)
        try:
            db.flush()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Storage failure issuing gift card {values.get('barcode_id')}: {e}")
            raise StorageError("Could not issue the gift card, please retry")
        db.refresh(db_obj)
        return db_obj

    def append_usage_if_balance(
        self,
        db: Session,
        *,
        gift_card_id: int,
        amount_cents: int,
        usage_values: Dict[str, Any],
        now: datetime,
    ) -> Tuple[GiftCard, GiftCardUsage]:
        """
        Debit a card and append its usage record in one transaction.

        The card row is locked while the balance is checked, and the balance
        write is conditional on the balance that was read, so two concurrent
        redemptions can never both spend the same funds.
        """
        try:
            card = (
                db.query(GiftCard)
                .filter(GiftCard.gift_card_id == gift_card_id)
                .with_for_update()
                .first()
            )
            if card is None:
                raise NotFoundError("gift_card", gift_card_id)

            balance = card.effective_balance_cents
            if amount_cents <= 0 or amount_cents > balance:
                raise InvalidAmountError(
                    f"Amount must be greater than 0 and at most the remaining balance of {balance / 100:.2f}",
                    details={"amount_cents": amount_cents, "remaining_balance_cents": balance},
                )

            new_balance = balance - amount_cents
            values: Dict[str, Any] = {GiftCard.remaining_balance_cents: new_balance}
            if new_balance == 0:
                values[GiftCard.redeemed] = True
                values[GiftCard.redeemed_at] = now

            if card.remaining_balance_cents is None:
                balance_guard = GiftCard.remaining_balance_cents.is_(None)
            else:
                balance_guard = GiftCard.remaining_balance_cents == balance

            updated = (
                db.query(GiftCard)
                .filter(
                    GiftCard.gift_card_id == gift_card_id,
                    GiftCard.redeemed.is_(False),
                    balance_guard,
                )
                .update(values, synchronize_session=False)
            )
            if updated != 1:
                raise StorageError(
                    "Gift card balance changed while redeeming, please retry",
                    error_code="CONCURRENT_REDEMPTION",
                    details={"gift_card_id": gift_card_id},
                )

            last_sequence = (
                db.query(func.max(GiftCardUsage.sequence))
                .filter(GiftCardUsage.gift_card_id == gift_card_id)
                .scalar()
            )
            usage = GiftCardUsage(
                gift_card_id=gift_card_id,
                sequence=(last_sequence or 0) + 1,
                amount_used_cents=amount_cents,
                remaining_after_cents=new_balance,
                used_at=now,
                **usage_values,
            )
            db.add(usage)
            db.flush()
            db.commit()
        except (NotFoundError, InvalidAmountError, StorageError):
            db.rollback()
            raise
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Concurrent redemption detected on gift card {gift_card_id}: {e.orig}")
            raise StorageError(
                "Gift card balance changed while redeeming, please retry",
                error_code="CONCURRENT_REDEMPTION",
                details={"gift_card_id": gift_card_id},
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Storage failure redeeming gift card {gift_card_id}: {e}")
            raise StorageError("Could not redeem the gift card, please retry", details={"gift_card_id": gift_card_id})

        db.refresh(card)
        db.refresh(usage)
        return card, usage


gift_card_crud = CRUDGiftCard(GiftCard)
