import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings:
    @staticmethod
    def _get_int(name: str, default: int) -> int:
        return int(os.getenv(name, str(default)))

    @staticmethod
    def _get_float(name: str, default: float) -> float:
        return float(os.getenv(name, str(default)))

    @property
    def APP_ENV(self) -> str:
        return os.getenv("APP_ENV", "development").strip().lower()

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def BASE_URL(self) -> str:
        return os.getenv("BASE_URL", "http://localhost:8000")

    @property
    def DATABASE_URL(self) -> str:
        database_url = os.getenv("DATABASE_URL", "").strip()
        if not database_url:
            raise ValueError("DATABASE_URL is required")
        return database_url

    @property
    def DB_CONNECT_RETRIES(self) -> int:
        return self._get_int("DB_CONNECT_RETRIES", 10)

    @property
    def DB_CONNECT_RETRY_DELAY_SECONDS(self) -> int:
        return self._get_int("DB_CONNECT_RETRY_DELAY_SECONDS", 2)

    @property
    def JWT_SECRET(self) -> str:
        return os.getenv("JWT_SECRET", "change-me-in-production")

    @property
    def JWT_ALGORITHM(self) -> str:
        return os.getenv("JWT_ALGORITHM", "HS256")

    @property
    def JWT_EXPIRE_MINUTES(self) -> int:
        return self._get_int("JWT_EXPIRE_MINUTES", 60)

    @property
    def STRIPE_SECRET_KEY(self) -> str:
        return os.getenv("STRIPE_SECRET_KEY", "")

    @property
    def STRIPE_WEBHOOK_SECRET(self) -> str:
        return os.getenv("STRIPE_WEBHOOK_SECRET", "")

    @property
    def WEBHOOK_TOLERANCE_SECONDS(self) -> int:
        return self._get_int("WEBHOOK_TOLERANCE_SECONDS", 300)

    @property
    def CHECKOUT_SUCCESS_URL(self) -> str:
        return os.getenv("CHECKOUT_SUCCESS_URL", "http://localhost:5173/payment/success")

    @property
    def CHECKOUT_CANCEL_URL(self) -> str:
        return os.getenv("CHECKOUT_CANCEL_URL", "http://localhost:5173/payment/cancel")

    @property
    def CHECKOUT_CURRENCY(self) -> str:
        return os.getenv("CHECKOUT_CURRENCY", "zar").lower()

    @property
    def MIN_CHECKOUT_AMOUNT_CENTS(self) -> int:
        return self._get_int("MIN_CHECKOUT_AMOUNT_CENTS", 100)

    @property
    def DEFAULT_ETA_MINUTES(self) -> int:
        return self._get_int("DEFAULT_ETA_MINUTES", 10)

    @property
    def ADMIN_CHECK_TIMEOUT_SECONDS(self) -> float:
        return self._get_float("ADMIN_CHECK_TIMEOUT_SECONDS", 1.5)

    @property
    def LOCATION_POLL_INTERVAL_SECONDS(self) -> int:
        return self._get_int("LOCATION_POLL_INTERVAL_SECONDS", 5)

    @property
    def RIDER_PAYOUT_PER_DELIVERY_CENTS(self) -> int:
        return self._get_int("RIDER_PAYOUT_PER_DELIVERY_CENTS", 2500)

    @property
    def CORS_ORIGINS(self) -> str:
        return os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")


settings = Settings()

# Validate critical settings
if settings.JWT_SECRET == "change-me-in-production":
    import warnings
    warnings.warn("JWT_SECRET is using default value. Change it in production!", UserWarning)
