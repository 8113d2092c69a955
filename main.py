from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from sqlalchemy.sql import text
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.database.session import get_db
from app.routes import (
    vehicle_layout_router,
    trip_router,
    registration_router,
    gift_card_router,
)
from app.core.logging_config import setup_logging, get_logger

# Setup logging as early as possible
setup_logging(force_configure=True)
logger = get_logger(__name__)

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Trip registrations with seat allocation, and gift cards with partial redemption",
    version=settings.APP_VERSION,
)

# Set up CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(vehicle_layout_router, prefix=settings.API_PREFIX)
app.include_router(trip_router, prefix=settings.API_PREFIX)
app.include_router(registration_router, prefix=settings.API_PREFIX)
app.include_router(gift_card_router, prefix=settings.API_PREFIX)

logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} starting in {settings.ENV} mode")


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.APP_NAME} API"}


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Database connection failed: {str(e)}"
        )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
