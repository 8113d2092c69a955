# ── Vehicles ──────────────────────────────────────────────────
from app.routes.vehicle_layout_router import router as vehicle_layout_router

# ── Trips & seats ─────────────────────────────────────────────
from app.routes.trip_router import router as trip_router
from app.routes.registration_router import router as registration_router

# ── Gift cards ────────────────────────────────────────────────
from app.routes.gift_card_router import router as gift_card_router
