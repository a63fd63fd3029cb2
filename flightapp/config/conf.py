from typing import Literal, Optional
from pydantic import BaseModel, Field
from utils.utils import get_secret, get_bool_secret, get_int_secret

# ---- Booking locator (PNR) ----
LOCATOR_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
LOCATOR_LENGTH = 6

# ---- Guest owner ----
# Reserved address, never a real customer's
GUEST_EMAIL = "guest@onboardticket.system"
GUEST_FIRST_NAME = "Guest"
GUEST_LAST_NAME = "User"

DEFAULT_CURRENCY = "USD"

STORAGE_SQL = "sql"
STORAGE_MEMORY = "memory"

BROKER_RABBITMQ = "rabbitmq"
BROKER_MEMORY = "memory"

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


class Settings(BaseModel):
    storage_backend: Literal["sql", "memory"] = STORAGE_MEMORY
    database_url: Optional[str] = None
    db_create_schema: bool = False
    db_echo: bool = False

    broker_backend: Literal["rabbitmq", "memory"] = BROKER_MEMORY
    rabbitmq_url: Optional[str] = None

    sendgrid_api_key: Optional[str] = None
    email_from: str = "bookings@onboardticket.com"

    locator_max_attempts: int = Field(default=5, ge=1)
    log_level: str = "INFO"
    port: int = 3000


def _database_url() -> Optional[str]:
    url = get_secret("DATABASE_URL")
    if url:
        return url

    db_host = get_secret("POSTGRES_HOST")
    if not db_host:
        return None

    db_user = get_secret("POSTGRES_USER")
    db_pass = get_secret("POSTGRES_PASSWORD")
    db_port = get_secret("POSTGRES_PORT", "5432")
    db = get_secret("POSTGRES_DB")
    return f"postgresql+asyncpg://{db_user}:{db_pass}@{db_host}:{db_port}/{db}"


def _rabbitmq_url() -> Optional[str]:
    rabbitmq_host = get_secret("RABBITMQ_HOST")
    if not rabbitmq_host:
        return None
    rabbitmq_user = get_secret("RABBITMQ_USER")
    rabbitmq_pass = get_secret("RABBITMQ_PASSWORD")
    rabbitmq_port = get_secret("RABBITMQ_PORT", "5672")
    return f"amqp://{rabbitmq_user}:{rabbitmq_pass}@{rabbitmq_host}:{rabbitmq_port}"


def load_settings() -> Settings:
    """
    Build settings from the environment (or Docker secrets).

    The storage backend is decided here once: SQL when a database is
    configured, the in-memory fallback otherwise, unless STORAGE_BACKEND
    says explicitly.
    """
    database_url = _database_url()
    storage_backend = get_secret("STORAGE_BACKEND") or (
        STORAGE_SQL if database_url else STORAGE_MEMORY
    )

    rabbitmq_url = _rabbitmq_url()
    broker_backend = get_secret("BROKER_BACKEND") or (
        BROKER_RABBITMQ if rabbitmq_url else BROKER_MEMORY
    )

    return Settings(
        storage_backend=storage_backend,
        database_url=database_url,
        db_create_schema=get_bool_secret("DB_CREATE_SCHEMA", False),
        db_echo=get_bool_secret("DB_ECHO", False),
        broker_backend=broker_backend,
        rabbitmq_url=rabbitmq_url,
        sendgrid_api_key=get_secret("SENDGRID_API_KEY"),
        email_from=get_secret("EMAIL_FROM", "bookings@onboardticket.com"),
        locator_max_attempts=get_int_secret("LOCATOR_MAX_ATTEMPTS", 5),
        log_level=get_secret("LOG_LEVEL", "INFO"),
        port=get_int_secret("PORT", 3000),
    )
