import os
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    ENV: str = os.getenv("ENV", "development")  # development, dev-server, production
    DEBUG: bool = ENV in ["development", "dev-server"]

    # Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./trip_seats.db")

    # Database connection pool settings (ignored for sqlite)
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "20"))
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "3600"))

    # Auth settings
    SECRET_KEY: str = os.getenv("SECRET_KEY", "supersecretkey")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60*24

    # SMTP Email settings
    SMTP_SERVER: str = os.getenv("SMTP_SERVER", "")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
    SMTP_USE_SSL: bool = os.getenv("SMTP_USE_SSL", "false").lower() == "true"

    SENDER_EMAIL: str = os.getenv("SENDER_EMAIL", "")
    SENDER_NAME: str = os.getenv("SENDER_NAME", "Trip Seat Manager")

    # Address that receives a copy of every new registration
    ADMIN_NOTIFICATION_EMAIL: str = os.getenv("ADMIN_NOTIFICATION_EMAIL", "")

    # Email delivery settings
    EMAIL_ENABLED: bool = os.getenv("EMAIL_ENABLED", "true").lower() == "true"
    EMAIL_RETRY_ATTEMPTS: int = int(os.getenv("EMAIL_RETRY_ATTEMPTS", "3"))
    EMAIL_RETRY_DELAY: int = int(os.getenv("EMAIL_RETRY_DELAY", "5"))

    # Frontend URL for registration links
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # Trips and seats
    APP_TIMEZONE: str = os.getenv("APP_TIMEZONE", "UTC")
    DEFAULT_VEHICLE_LAYOUT: str = os.getenv("DEFAULT_VEHICLE_LAYOUT", "sprinter_15")
    TRIP_DELETE_CASCADE: bool = os.getenv("TRIP_DELETE_CASCADE", "false").lower() == "true"

    # Gift cards
    GIFT_CARD_BARCODE_PREFIX: str = os.getenv("GIFT_CARD_BARCODE_PREFIX", "GC")
    GIFT_CARD_DEFAULT_VALIDITY_DAYS: int = int(os.getenv("GIFT_CARD_DEFAULT_VALIDITY_DAYS", "365"))
    GIFT_CARD_DEFAULT_MESSAGE: str = "Wishing you wonderful adventures!"

    # API specific settings
    API_PREFIX: str = "/api/v1"
    APP_NAME: str = "Trip Seat Manager"
    APP_VERSION: str = "1.0.0"

    class Config:
        case_sensitive = True
        env_file = None

settings = Settings()
