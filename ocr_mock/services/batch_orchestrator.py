"""
Оркестратор пакетного запроса (/ocr/batch).

Алгоритм:
    1. На каждый элемент резервируется слот с явным флагом заполненности
    2. Для каждого элемента запускается задача процессора (общий токен отмены)
    3. Задачи отправляют (индекс, исход) в общую очередь
    4. Единственный сборщик раскладывает исходы по слотам своих индексов
    5. Если токен сработал раньше, чем пришли все исходы, оставшиеся
       слоты заполняются результатом 408, заполненные не трогаются

Длина результата всегда равна длине запроса, results[i].key == items[i].key.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Union

from ocr_mock.errors import ItemProcessingError, ItemTimeout
from ocr_mock.schemas import RecognitionRequest, RecognitionResult
from ocr_mock.services.cancellation import CancellationToken
from ocr_mock.services.item_processor import ItemProcessor

logger = logging.getLogger(__name__)

BATCH_CANCELLED_ERROR = "batch processing cancelled or timed out"

Outcome = Union[RecognitionResult, BaseException]


@dataclass
class _Slot:
    """Зарезервированная позиция результата. filled меняется ровно один раз."""

    result: Optional[RecognitionResult] = None
    filled: bool = False


async def handle_batch(
    token: CancellationToken,
    items: list[RecognitionRequest],
    processor: ItemProcessor,
) -> list[RecognitionResult]:
    """
    Обрабатывает пакет документов параллельно.

    Ошибка одного элемента не прерывает остальные. При срабатывании токена
    сбор прекращается сразу, незавершённые элементы получают 408.

    Args:
        token: токен отмены запроса, общий для всех элементов
        items: элементы пакета (непустой список)
        processor: процессор документов

    Returns:
        list[RecognitionResult]: результаты в порядке items
    """
    slots = [_Slot() for _ in items]
    completions: asyncio.Queue[tuple[int, Outcome]] = asyncio.Queue()

    async def run_item(index: int, item: RecognitionRequest) -> None:
        try:
            outcome: Outcome = await processor.process(token, item.key, item.locator)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            outcome = e
        completions.put_nowait((index, outcome))

    tasks = [
        asyncio.create_task(run_item(index, item))
        for index, item in enumerate(items)
    ]
    logger.info(f"Пакет: запущено {len(tasks)} задач")

    cancel_waiter = asyncio.create_task(token.wait())
    pending = len(items)
    getter: Optional[asyncio.Task] = None

    try:
        while pending:
            getter = asyncio.create_task(completions.get())
            done, _ = await asyncio.wait(
                {getter, cancel_waiter},
                return_when=asyncio.FIRST_COMPLETED,
            )

            if getter in done:
                index, outcome = getter.result()
                pending -= 1
                _place(slots, items, index, outcome, token)
                continue

            # Токен сработал: выходим из цикла сбора целиком
            break

        if not all(slot.filled for slot in slots):
            # Уже доставленные исходы не теряем
            while not completions.empty():
                index, outcome = completions.get_nowait()
                _place(slots, items, index, outcome, token)

            backfilled = _backfill(slots, items)
            logger.warning(
                f"Пакет отменён ({token.reason}): "
                f"{backfilled} из {len(items)} элементов без результата"
            )
    finally:
        cancel_waiter.cancel()
        if getter is not None:
            getter.cancel()
        for task in tasks:
            task.cancel()

    return [slot.result for slot in slots]


def _place(
    slots: list[_Slot],
    items: list[RecognitionRequest],
    index: int,
    outcome: Outcome,
    token: CancellationToken,
) -> None:
    """
    Записывает исход задачи в её слот.

    Прерывание, вызванное отменой пакета, в слот не пишется: такие слоты
    заполняет _backfill.
    """
    if isinstance(outcome, RecognitionResult):
        _fill(slots, index, outcome)
        return

    if isinstance(outcome, ItemTimeout) and token.cancelled:
        return

    key = items[index].key
    if isinstance(outcome, ItemProcessingError):
        message = str(outcome)
    else:
        message = str(outcome) or type(outcome).__name__
        logger.error(f"Элемент {index} ({key}): непредвиденная ошибка {outcome!r}")

    _fill(slots, index, RecognitionResult.failure(key, 500, message))


def _fill(slots: list[_Slot], index: int, result: RecognitionResult) -> None:
    slot = slots[index]
    if slot.filled:
        raise RuntimeError(f"Слот {index} уже заполнен")
    slot.result = result
    slot.filled = True


def _backfill(slots: list[_Slot], items: list[RecognitionRequest]) -> int:
    """Заполняет пустые слоты результатом 408. Возвращает число заполненных."""
    count = 0
    for index, slot in enumerate(slots):
        if slot.filled:
            continue
        _fill(
            slots,
            index,
            RecognitionResult.failure(items[index].key, 408, BATCH_CANCELLED_ERROR),
        )
        count += 1
    return count
