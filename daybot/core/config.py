# daybot/core/config.py

import logging
from typing import Annotated, Any, List, Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_TIME_FORMATS = ["%I:%M %p", "%I:%M%p", "%I %p", "%H:%M"]

DeliveryPolicy = Literal["at_most_once", "retry"]
StoreBackend = Literal["supabase", "memory"]
NotifierBackend = Literal["whatsapp", "log"]


class Settings(BaseSettings):
    """
    Configuración del bot. Cada campo se lee de la variable de entorno con el mismo
    nombre en mayúsculas (o de .env); un valor inválido falla al arrancar con
    ValidationError en vez de caer a un default.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
    )

    # --- Zona horaria / parsing de horas ---
    timezone: str = Field(default="Asia/Kolkata", validation_alias="BOT_TIMEZONE")
    # TIME_FORMATS llega como "fmt1,fmt2", no como JSON
    time_formats: Annotated[List[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_TIME_FORMATS))
    roll_past_times: bool = False

    # --- Sweeper ---
    sweep_interval_seconds: float = 60.0
    delivery_policy: DeliveryPolicy = "at_most_once"
    max_delivery_attempts: int = 5
    delivery_workers: int = 4
    run_scheduler: bool = True

    # --- Store ---
    store_backend: StoreBackend = "supabase"
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    reminders_table: str = "reminders"
    tasks_table: str = "tasks"

    # --- WhatsApp Cloud API ---
    notifier_backend: NotifierBackend = "whatsapp"
    meta_wa_token: str = ""
    meta_wa_phone_id: str = ""
    meta_wa_api_version: str = "v19.0"
    meta_wa_verify_token: str = ""
    http_timeout_seconds: float = 20.0

    # --- Ops ---
    admin_token: str = ""
    log_level: str = "INFO"

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Invalid timezone {v!r}. Use an IANA TZ like 'Asia/Kolkata'.")
        return v

    @field_validator("sweep_interval_seconds", "http_timeout_seconds")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("max_delivery_attempts", "delivery_workers")
    @classmethod
    def _at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("time_formats")
    @classmethod
    def _non_empty_formats(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("at least one time format is required")
        return v

    @field_validator("time_formats", mode="before")
    @classmethod
    def _split_formats(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v

    @field_validator("supabase_url")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def from_env(cls, env_file: Optional[str] = ".env") -> "Settings":
        """
        Punto de entrada de main y del worker: entorno + el .env indicado (si existe).
        """
        return cls(_env_file=env_file)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )
