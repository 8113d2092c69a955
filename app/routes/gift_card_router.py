from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import TripSeatError
from app.database.session import get_db
from app.schemas.gift_card import (
    GiftCardCreate,
    GiftCardPurchase,
    GiftCardRedeem,
    GiftCardRedeemResponse,
    GiftCardResponse,
    GiftCardUsageResponse,
)
from app.services.gift_card_ledger import GiftCardLedger, GiftCardStatus
from app.utils.response_utils import ResponseWrapper, handle_db_error, handle_domain_error, handle_http_error
from common_utils.auth.permission_checker import PermissionChecker
from app.core.logging_config import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/gift-cards", tags=["gift cards"])


def serialize_card(ledger: GiftCardLedger, card) -> GiftCardResponse:
    return GiftCardResponse.from_model(card, status=ledger.status(card).value)


# ---------------------------
# ISSUE
# ---------------------------
@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
def issue_gift_card(
    card_in: GiftCardCreate,
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["gift-card.create"])),
):
    """Issue a gift card from the dashboard."""
    try:
        ledger = GiftCardLedger(db)
        card = ledger.issue(
            recipient_name=card_in.recipient_name,
            sender_name=card_in.sender_name,
            amount=card_in.amount,
            message=card_in.message,
            expiry_date=card_in.expiry_date,
            recipient_email=card_in.recipient_email,
            sender_email=card_in.sender_email,
        )
        logger.info(f"Gift card {card.barcode_id} issued by user {user_data.get('user_id')}")
        return ResponseWrapper.created(
            data={"gift_card": serialize_card(ledger, card)},
            message="Gift card created successfully",
        )

    except TripSeatError as e:
        db.rollback()
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"DB error while issuing gift card: {e}")
        raise handle_db_error(e)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Unexpected error issuing gift card: {e}")
        raise handle_http_error(e)


@router.post("/purchase", response_model=dict, status_code=status.HTTP_201_CREATED)
def purchase_gift_card(card_in: GiftCardPurchase, db: Session = Depends(get_db)):
    """
    Public self-service purchase.

    The payment method is recorded only; no payment is captured here.
    """
    try:
        ledger = GiftCardLedger(db)
        card = ledger.purchase(
            amount=card_in.amount,
            recipient_name=card_in.recipient_name,
            recipient_email=card_in.recipient_email,
            sender_name=card_in.sender_name,
            sender_email=card_in.sender_email,
            message=card_in.message,
            payment_method=card_in.payment_method.value,
        )
        return ResponseWrapper.created(
            data={"gift_card": serialize_card(ledger, card)},
            message="Gift card purchased successfully",
        )

    except TripSeatError as e:
        db.rollback()
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"DB error while purchasing gift card: {e}")
        raise handle_db_error(e)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Unexpected error purchasing gift card: {e}")
        raise handle_http_error(e)


# ---------------------------
# LIST / GET
# ---------------------------
@router.get("/", response_model=dict, status_code=status.HTTP_200_OK)
def get_gift_cards(
    status_filter: Optional[GiftCardStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["gift-card.read"])),
):
    """List gift cards, newest first, optionally filtered by derived status."""
    try:
        ledger = GiftCardLedger(db)
        cards = ledger.list(status=status_filter)
        return ResponseWrapper.success(
            data={"items": [serialize_card(ledger, card) for card in cards], "total": len(cards)},
            message="Gift cards fetched successfully",
        )

    except TripSeatError as e:
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        logger.exception(f"DB error while fetching gift cards: {e}")
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching gift cards: {e}")
        raise handle_http_error(e)


@router.get("/barcode/{barcode_id}", response_model=dict, status_code=status.HTTP_200_OK)
def get_gift_card_by_barcode(barcode_id: str, db: Session = Depends(get_db)):
    """Public: the gift card reveal page looks cards up by barcode."""
    try:
        ledger = GiftCardLedger(db)
        card = ledger.get_by_barcode(barcode_id)
        return ResponseWrapper.success(
            data={"gift_card": serialize_card(ledger, card)},
            message="Gift card fetched successfully",
        )

    except TripSeatError as e:
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        logger.exception(f"DB error while fetching gift card {barcode_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching gift card {barcode_id}: {e}")
        raise handle_http_error(e)


@router.get("/{gift_card_id}", response_model=dict, status_code=status.HTTP_200_OK)
def get_gift_card(
    gift_card_id: int,
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["gift-card.read"])),
):
    try:
        ledger = GiftCardLedger(db)
        card = ledger.get(gift_card_id)
        return ResponseWrapper.success(
            data={"gift_card": serialize_card(ledger, card)},
            message=f"Gift card {gift_card_id} fetched successfully",
        )

    except TripSeatError as e:
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        logger.exception(f"DB error while fetching gift card {gift_card_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching gift card {gift_card_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# REDEEM
# ---------------------------
@router.post("/{gift_card_id}/redeem", response_model=dict, status_code=status.HTTP_200_OK)
def redeem_gift_card(
    gift_card_id: int,
    redeem_in: GiftCardRedeem,
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["gift-card.redeem"])),
):
    """
    Spend part or all of a card's balance on a trip.

    400 INVALID_AMOUNT when the amount is not positive or exceeds the balance;
    503 CONCURRENT_REDEMPTION when another redemption changed the card first.
    """
    try:
        ledger = GiftCardLedger(db)
        result = ledger.redeem(
            gift_card_id,
            redeem_in.amount_to_use,
            trip_name=redeem_in.trip_name,
            trip_date=redeem_in.trip_date,
            number_of_people=redeem_in.number_of_people,
            notes=redeem_in.notes,
        )
        card = result.gift_card
        logger.info(f"Gift card {gift_card_id} redeemed by user {user_data.get('user_id')}")
        return ResponseWrapper.success(
            data=GiftCardRedeemResponse(
                gift_card_id=card.gift_card_id,
                new_balance_cents=result.new_balance_cents,
                new_balance=result.new_balance_cents / 100,
                redeemed=card.redeemed,
                status=ledger.status(card).value,
                usage=GiftCardUsageResponse.from_model(result.usage),
            ),
            message="Gift card redeemed successfully",
        )

    except TripSeatError as e:
        db.rollback()
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"DB error while redeeming gift card {gift_card_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Unexpected error redeeming gift card {gift_card_id}: {e}")
        raise handle_http_error(e)


# ---------------------------
# DELETE
# ---------------------------
@router.delete("/{gift_card_id}", response_model=dict, status_code=status.HTTP_200_OK)
def delete_gift_card(
    gift_card_id: int,
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["gift-card.delete"])),
):
    """Hard delete; the usage history is deleted with the card."""
    try:
        barcode_id = GiftCardLedger(db).delete(gift_card_id)
        logger.info(f"Gift card {barcode_id} deleted by user {user_data.get('user_id')}")
        return ResponseWrapper.deleted(
            message="Gift card deleted successfully",
            data={"gift_card_id": gift_card_id, "barcode_id": barcode_id},
        )

    except TripSeatError as e:
        db.rollback()
        raise handle_domain_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"DB error while deleting gift card {gift_card_id}: {e}")
        raise handle_db_error(e)
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Unexpected error deleting gift card {gift_card_id}: {e}")
        raise handle_http_error(e)
