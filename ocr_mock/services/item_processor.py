"""
Процессор одного документа — имитация OCR.

Реального распознавания нет: процессор ждёт случайное время (1–4 с по
умолчанию) и возвращает сгенерированный текст из фиксированного набора
фраз. Ожидание прерывается токеном отмены.
"""

import logging
import random
from typing import Optional

from ocr_mock.errors import ItemTimeout
from ocr_mock.schemas import RecognitionResult
from ocr_mock.services.cancellation import CancellationToken, sleep_unless_cancelled

logger = logging.getLogger(__name__)

DOCUMENT_PHRASES = (
    "Identity document",
    "Passport of the Argentine Republic",
    "Driver's license",
    "Commercial invoice No. 12345",
    "Birth certificate",
    "Employment contract",
    "Monthly payment receipt",
    "University diploma",
    "VISA credit card",
    "Public utility bill",
)

FIELD_WORDS = (
    "validity",
    "issuance",
    "number",
    "date",
    "code",
    "series",
    "emission",
)


class ItemProcessor:
    """
    Имитирует распознавание одного документа.

    Экземпляр хранит только параметры и генератор случайных чисел,
    поэтому один процессор можно использовать из любого числа задач.

    Attributes:
        min_delay_ms: минимальная задержка обработки в мс
        max_delay_ms: максимальная задержка обработки в мс (включительно)
        extra_word_probability: вероятность добавить к фразе поле и номер
    """

    def __init__(
        self,
        min_delay_ms: int = 1000,
        max_delay_ms: int = 3999,
        extra_word_probability: float = 0.7,
        rng: Optional[random.Random] = None,
    ):
        if min_delay_ms > max_delay_ms:
            raise ValueError(
                f"min_delay_ms={min_delay_ms} больше max_delay_ms={max_delay_ms}"
            )
        self.min_delay_ms = min_delay_ms
        self.max_delay_ms = max_delay_ms
        self.extra_word_probability = extra_word_probability
        self._rng = rng or random.Random()

    def pick_delay(self) -> float:
        """Случайная задержка обработки в секундах."""
        return self._rng.randint(self.min_delay_ms, self.max_delay_ms) / 1000

    def synthesize_text(self) -> str:
        """
        Генерирует "распознанный" текст.

        Формат: фраза документа, и с вероятностью extra_word_probability
        через пробел поле и четырёхзначный номер, например
        "Birth certificate date 4821".
        """
        text = self._rng.choice(DOCUMENT_PHRASES)

        if self._rng.random() < self.extra_word_probability:
            field = self._rng.choice(FIELD_WORDS)
            text += f" {field} {self._rng.randint(1000, 9999)}"

        return text

    async def process(
        self,
        token: CancellationToken,
        key: str,
        locator: str,
    ) -> RecognitionResult:
        """
        Обрабатывает один документ.

        Args:
            token: токен отмены, общий для всего запроса
            key: ключ документа
            locator: адрес документа (не загружается)

        Returns:
            RecognitionResult: результат со статусом 200

        Raises:
            ItemTimeout: токен сработал раньше окончания обработки,
                в исключении лежит готовый результат 408
        """
        delay = self.pick_delay()
        logger.debug(f"Обработка {key} ({locator}): задержка {delay:.3f}s")

        if not await sleep_unless_cancelled(token, delay):
            logger.info(f"Обработка {key} прервана: {token.reason}")
            raise ItemTimeout(key)

        return RecognitionResult(key=key, status_code=200, text=self.synthesize_text())
