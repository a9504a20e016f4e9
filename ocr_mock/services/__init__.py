"""
Сервисы mock OCR.

Модули:
    - cancellation: токен отмены запроса
    - item_processor: имитация распознавания одного документа
    - orchestrator: одиночный запрос (гонка обработки и отмены)
    - batch_orchestrator: пакетный запрос (параллельная обработка, 408 для незавершённых)
"""

from ocr_mock.services.batch_orchestrator import handle_batch
from ocr_mock.services.cancellation import CancellationToken, sleep_unless_cancelled
from ocr_mock.services.item_processor import ItemProcessor
from ocr_mock.services.orchestrator import handle_single

__all__ = [
    "CancellationToken",
    "sleep_unless_cancelled",
    "ItemProcessor",
    "handle_single",
    "handle_batch",
]
