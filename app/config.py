#config.py
import os
from pydantic_settings import BaseSettings
from pydantic import Field
from pydantic_settings import SettingsConfigDict
from typing import Optional, List, Dict
from functools import lru_cache

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, populate_by_name=True)
    # Application Settings
    APP_NAME: str = "Clinic Booking API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True  # Can disable in production

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = int(os.environ.get("PORT", 8000))

    # Database Settings
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "sqlite:///./clinic.db")

    # Security Settings
    SECRET_KEY: str = Field(default="change-me-in-prod", alias="JWT_SECRET_KEY")
    ALGORITHM: str = "HS256"

    # CORS Settings (accept comma-separated strings to avoid JSON parsing in env)
    ALLOWED_ORIGINS: str = os.environ.get("ALLOWED_ORIGINS", "*")
    ALLOWED_METHODS: str = os.environ.get("ALLOWED_METHODS", "GET,POST,PUT,PATCH,DELETE,OPTIONS")
    ALLOWED_HEADERS: str = os.environ.get("ALLOWED_HEADERS", "*")
    CORS_ALLOW_CREDENTIALS: bool = True

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60
    REDIS_URL: Optional[str] = os.environ.get("REDIS_URL", None)

    # Public base URL used in subscription links
    BASE_URL: str = os.environ.get("BASE_URL", "http://localhost:8000")

    # Clinic
    CLINIC_NAME: str = "Centro Médico Clodina"
    CLINIC_LOCATION: str = "C/ El Socorro, 2, 38500 Güímar, Santa Cruz de Tenerife"
    CLINIC_TIMEZONE: str = "Atlantic/Canary"

    # Booking rules
    SLOT_MINUTES: int = Field(default=30, ge=5, le=240)
    MIN_REASON_LENGTH: int = 5
    # weekday name -> list of "HH:MM-HH:MM"; used for doctors without their own schedule
    DEFAULT_WORKING_HOURS: Dict[str, List[str]] = {
        "monday": ["09:00-14:00", "16:00-19:00"],
        "tuesday": ["09:00-14:00", "16:00-19:00"],
        "wednesday": ["09:00-14:00", "16:00-19:00"],
        "thursday": ["09:00-14:00", "16:00-19:00"],
        "friday": ["09:00-14:00"],
    }

    # Calendar feeds
    ICAL_DOMAIN: str = "farmaciafatimadiaz.com"
    ICAL_PRODID: str = "-//Farmacia Fatima Diaz Guillen//Centro Medico Clodina//ES"
    ICAL_CACHE_MAX_AGE: int = 300  # seconds

    # Accept comma-separated strings for list envs in addition to JSON arrays
    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",")]

    @property
    def allowed_origins_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_ORIGINS)

    @property
    def allowed_methods_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_METHODS)

    @property
    def allowed_headers_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_HEADERS)

@lru_cache()
def get_settings() -> Settings:
    s = Settings()
    # Normalize ALLOWED_ORIGINS if provided as comma-separated string env var CORS_ORIGINS
    cors_env = os.environ.get("CORS_ORIGINS")
    if cors_env:
        s.ALLOWED_ORIGINS = cors_env
    return s

settings: Settings = get_settings()
