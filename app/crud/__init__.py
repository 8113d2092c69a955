# Import all CRUD modules for easier access
from app.crud.trip import trip_crud
from app.crud.registration import registration_crud
from app.crud.gift_card import gift_card_crud
