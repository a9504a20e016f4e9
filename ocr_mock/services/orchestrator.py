"""
Оркестратор одиночного запроса (/ocr).

Запускает процессор в отдельной задаче и одновременно ждёт токен отмены
запроса. Исход определяет, кто закончил первым:

    - процессор вернул результат → результат как есть (200)
    - процессор прерван своим дедлайном → 408
    - сработал токен запроса (клиент ушёл или истёк дедлайн) → 499
"""

import asyncio
import logging
from typing import Optional

from ocr_mock.errors import ItemTimeout
from ocr_mock.schemas import RecognitionResult
from ocr_mock.services.cancellation import CancellationToken
from ocr_mock.services.item_processor import ItemProcessor

logger = logging.getLogger(__name__)

PROCESSING_TIMEOUT_ERROR = "timeout during processing"
CLIENT_CANCELLED_ERROR = "client cancelled the request"


async def handle_single(
    token: CancellationToken,
    key: str,
    locator: str,
    processor: ItemProcessor,
    processing_timeout: Optional[float] = None,
) -> RecognitionResult:
    """
    Обрабатывает один документ с учётом отмены запроса.

    Никогда не бросает исключений: любой исход превращается в результат
    с кодом, указывающим, чья отмена сработала.

    Args:
        token: токен отмены запроса
        key: ключ документа
        locator: адрес документа
        processor: процессор документов
        processing_timeout: собственный дедлайн обработки в секундах

    Returns:
        RecognitionResult: 200, 408, 499 или 500
    """
    processing_token = token.child(timeout=processing_timeout)
    job = asyncio.create_task(processor.process(processing_token, key, locator))
    cancel_waiter = asyncio.create_task(token.wait())

    try:
        await asyncio.wait({job, cancel_waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        job.cancel()
        await asyncio.gather(job, return_exceptions=True)
        raise
    finally:
        cancel_waiter.cancel()
        processing_token.close()

    if not job.done():
        # Токен запроса сработал раньше, процессор отменён через child-токен
        job.cancel()
        await asyncio.gather(job, return_exceptions=True)
        logger.info(f"{key}: запрос отменён ({token.reason})")
        return RecognitionResult.failure(key, 499, CLIENT_CANCELLED_ERROR)

    error = job.exception()
    if error is None:
        return job.result()

    if token.cancelled:
        # Процессор увидел отмену запроса раньше самого оркестратора
        logger.info(f"{key}: запрос отменён ({token.reason})")
        return RecognitionResult.failure(key, 499, CLIENT_CANCELLED_ERROR)

    if isinstance(error, ItemTimeout):
        logger.warning(f"{key}: таймаут обработки ({processing_token.reason})")
        return RecognitionResult.failure(key, 408, PROCESSING_TIMEOUT_ERROR)

    logger.error(f"{key}: ошибка обработки: {error!r}")
    return RecognitionResult.failure(key, 500, str(error) or type(error).__name__)
