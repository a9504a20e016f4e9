"""
Конфигурация mock OCR сервиса.

Значения читаются из переменных окружения (префикс OCR_) или из .env файла.
Все параметры имеют дефолты, .env нужен только для переопределения.

Документация по параметрам: .env.example
"""

from typing import Optional

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Настройки mock OCR сервиса.

    Читает переменные с префиксом OCR_ из .env файла.
    Порт дополнительно читается из PORT (как в большинстве PaaS).
    """

    model_config = SettingsConfigDict(
        env_prefix="OCR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Сервер ---
    host: str = "0.0.0.0"
    port: int = Field(
        default=8080,
        validation_alias=AliasChoices("PORT", "OCR_PORT"),
    )
    log_level: str = "INFO"

    # --- Таймауты ---
    # Дедлайн на весь входящий запрос
    request_timeout_seconds: float = Field(default=15.0, gt=0)
    # Собственный дедлайн обработки в режиме /ocr (None: без ограничения)
    processing_timeout_seconds: Optional[float] = Field(default=None, gt=0)

    # --- Имитация обработки ---
    min_delay_ms: int = Field(default=1000, ge=0)
    max_delay_ms: int = Field(default=3999, ge=0)
    extra_word_probability: float = Field(default=0.7, ge=0.0, le=1.0)

    # --- Лимиты ---
    max_batch_items: int = Field(default=100, ge=1)

    @model_validator(mode="after")
    def _check_delay_range(self) -> "Settings":
        if self.min_delay_ms > self.max_delay_ms:
            raise ValueError(
                f"min_delay_ms ({self.min_delay_ms}) больше "
                f"max_delay_ms ({self.max_delay_ms})"
            )
        return self


# Глобальный экземпляр настроек
settings = Settings()
