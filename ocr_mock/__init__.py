"""
Mock OCR Service — имитация сервиса распознавания документов.

Реального OCR нет: каждый документ "обрабатывается" случайное время
и получает сгенерированный текст. Реальна асинхронная часть:
    - гонка обработки с отменой запроса (/ocr)
    - параллельная обработка пакета с сохранением порядка (/ocr/batch)
"""

from ocr_mock.config import settings
from ocr_mock.schemas import (
    BatchOCRRequest,
    BatchOCRResponse,
    OCRRequest,
    OCRResponse,
    RecognitionRequest,
    RecognitionResult,
)

__all__ = [
    "settings",
    "OCRRequest",
    "OCRResponse",
    "BatchOCRRequest",
    "BatchOCRResponse",
    "RecognitionRequest",
    "RecognitionResult",
]
