"""
Схемы данных mock OCR сервиса.

Включает:
    - Внутренние dataclass'ы пайплайна (запрос и результат по одному элементу)
    - Pydantic модели для API (/ocr и /ocr/batch)
"""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# Внутренние dataclass'ы для пайплайна
# =============================================================================


@dataclass(frozen=True)
class RecognitionRequest:
    """
    Один элемент на распознавание.

    Attributes:
        key: ключ клиента, возвращается в результате без изменений
        locator: адрес документа (url из запроса)
    """

    key: str
    locator: str


@dataclass(frozen=True)
class RecognitionResult:
    """
    Результат обработки одного элемента.

    Либо status_code=200 и непустой text, либо код ошибки и непустой error.

    Attributes:
        key: ключ исходного элемента
        status_code: 200, 408, 499 или 500
        text: распознанный (сгенерированный) текст
        error: описание ошибки
    """

    key: str
    status_code: int
    text: str = ""
    error: Optional[str] = None

    @classmethod
    def failure(cls, key: str, status_code: int, error: str) -> "RecognitionResult":
        return cls(key=key, status_code=status_code, text="", error=error)


# =============================================================================
# Pydantic модели для API
# =============================================================================


class OCRRequest(BaseModel):
    """Тело запроса POST /ocr."""

    key: str = Field(min_length=1, description="Ключ документа на стороне клиента")
    url: str = Field(min_length=1, description="Адрес изображения документа")


class OCRResponse(BaseModel):
    """
    Ответ по одному документу.

    Attributes:
        key: ключ документа из запроса
        status_code: статус обработки (дублирует HTTP статус в /ocr)
        full_text: распознанный текст
        err: описание ошибки (не сериализуется, если пусто)
    """

    key: str
    status_code: int
    full_text: str = ""
    err: Optional[str] = None

    @classmethod
    def from_result(cls, result: RecognitionResult) -> "OCRResponse":
        return cls(
            key=result.key,
            status_code=result.status_code,
            full_text=result.text,
            err=result.error or None,
        )


class BatchItemInput(BaseModel):
    """
    Элемент пакетного запроса.

    Поля необязательны на уровне схемы: отсутствие key/url проверяется
    отдельно, чтобы вернуть номер проблемного элемента.
    """

    key: Optional[str] = None
    url: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.key) and bool(self.url)


class BatchOCRRequest(BaseModel):
    """Тело запроса POST /ocr/batch."""

    items: list[BatchItemInput]


class BatchOCRResponse(BaseModel):
    """Ответ POST /ocr/batch: результаты в порядке элементов запроса."""

    results: list[OCRResponse] = []


class ErrorResponse(BaseModel):
    """Ошибка валидации пакетного запроса."""

    error: str
