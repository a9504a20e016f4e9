"""
Mock OCR Service — FastAPI приложение.

Эндпоинты:
    GET  /health     — проверка работоспособности
    POST /ocr        — один документ {key, url}
    POST /ocr/batch  — пакет документов {items: [{key, url}, ...]}

На каждый запрос создаётся токен отмены: он срабатывает по дедлайну
(request_timeout_seconds) или при разрыве соединения клиентом.

Запуск:
    uvicorn ocr_mock.main:app --host 0.0.0.0 --port 8080
"""

import asyncio
import json
import logging
import time
import uuid
from contextlib import asynccontextmanager, suppress
from functools import lru_cache
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ValidationError

from ocr_mock.config import settings
from ocr_mock.schemas import (
    BatchOCRRequest,
    BatchOCRResponse,
    ErrorResponse,
    OCRRequest,
    OCRResponse,
    RecognitionRequest,
)
from ocr_mock.services.batch_orchestrator import handle_batch
from ocr_mock.services.cancellation import CancellationToken
from ocr_mock.services.item_processor import ItemProcessor
from ocr_mock.services.orchestrator import handle_single

# Настройка логгера
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [OCR-Mock] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

INVALID_SINGLE_MESSAGE = "invalid JSON, expected {key,url}"
INVALID_BATCH_MESSAGE = "invalid JSON, expected {items:[{key,url},...]}"
CLIENT_DISCONNECTED = "client disconnected"


class UnicodeJSONResponse(JSONResponse):
    """JSON ответ без \\uXXXX экранирования не-ASCII символов."""

    def render(self, content) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            indent=None,
            separators=(",", ":"),
        ).encode("utf-8")


# FastAPI приложение
app = FastAPI(
    title="Mock OCR Service",
    description="Имитация распознавания документов с отменой и пакетной обработкой",
    version="1.0.0",
    default_response_class=UnicodeJSONResponse,
)


@lru_cache
def get_processor() -> ItemProcessor:
    """Процессор документов с параметрами из настроек (один на процесс)."""
    return ItemProcessor(
        min_delay_ms=settings.min_delay_ms,
        max_delay_ms=settings.max_delay_ms,
        extra_word_probability=settings.extra_word_probability,
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Логирует каждый запрос и проставляет X-Request-ID."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:16]
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = int((time.perf_counter() - start_time) * 1000)
    response.headers["X-Request-ID"] = request_id
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"за {duration_ms}ms [{request_id}]"
    )
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> UnicodeJSONResponse:
    logger.exception(f"Необработанная ошибка {request.method} {request.url.path}: {exc}")
    return UnicodeJSONResponse(
        status_code=500,
        content=ErrorResponse(error="internal server error").model_dump(),
    )


@app.get("/health", response_class=PlainTextResponse)
async def health_check() -> str:
    """Проверка работоспособности сервиса."""
    return "ok"


@app.post("/ocr", response_model=OCRResponse)
async def execute_ocr(
    request: Request,
    processor: ItemProcessor = Depends(get_processor),
) -> UnicodeJSONResponse:
    """
    Распознаёт один документ.

    HTTP статус ответа совпадает с status_code в теле:
        200 — текст получен
        408 — истёк дедлайн обработки
        499 — клиент отменил запрос (или истёк дедлайн запроса)

    Args:
        request: запрос с телом {"key": ..., "url": ...}
        processor: процессор документов

    Returns:
        UnicodeJSONResponse: {"key", "status_code", "full_text", "err"?}
    """
    body = await request.body()
    try:
        payload = OCRRequest.model_validate_json(body)
    except ValidationError as e:
        logger.warning(f"Некорректный запрос /ocr: {e.error_count()} ошибок валидации")
        return _respond(
            OCRResponse(key="", status_code=400, full_text="", err=INVALID_SINGLE_MESSAGE),
            status_code=400,
        )

    logger.info(f"Получен документ: key={payload.key}, url={payload.url}")

    async with _request_cancellation(request) as token:
        result = await handle_single(
            token,
            payload.key,
            payload.url,
            processor,
            processing_timeout=settings.processing_timeout_seconds,
        )

    return _respond(OCRResponse.from_result(result), status_code=result.status_code)


@app.post("/ocr/batch", response_model=BatchOCRResponse)
async def execute_ocr_batch(
    request: Request,
    processor: ItemProcessor = Depends(get_processor),
) -> UnicodeJSONResponse:
    """
    Распознаёт пакет документов параллельно.

    Результаты возвращаются в порядке элементов запроса. Элементы, не
    успевшие завершиться до отмены запроса, получают status_code=408.

    Args:
        request: запрос с телом {"items": [{"key": ..., "url": ...}, ...]}
        processor: процессор документов

    Returns:
        UnicodeJSONResponse: {"results": [...]} или {"error": ...} при 400
    """
    body = await request.body()
    try:
        payload = BatchOCRRequest.model_validate_json(body)
    except ValidationError as e:
        logger.warning(f"Некорректный запрос /ocr/batch: {e.error_count()} ошибок валидации")
        return _respond(ErrorResponse(error=INVALID_BATCH_MESSAGE), status_code=400)

    if not payload.items:
        logger.warning("Пустой пакет")
        return _respond(ErrorResponse(error=INVALID_BATCH_MESSAGE), status_code=400)

    if len(payload.items) > settings.max_batch_items:
        return _respond(
            ErrorResponse(
                error=f"too many items: {len(payload.items)}, "
                f"maximum is {settings.max_batch_items}"
            ),
            status_code=400,
        )

    for index, item in enumerate(payload.items):
        if not item.is_complete:
            return _respond(
                ErrorResponse(error=f"Item {index}: key and url are required"),
                status_code=400,
            )

    items = [RecognitionRequest(key=item.key, locator=item.url) for item in payload.items]
    logger.info(f"Получен пакет: {len(items)} документов")

    start_time = time.perf_counter()
    async with _request_cancellation(request) as token:
        results = await handle_batch(token, items, processor)

    duration_ms = int((time.perf_counter() - start_time) * 1000)
    completed = sum(1 for r in results if r.status_code == 200)
    logger.info(f"Пакет обработан: {completed}/{len(results)} успешно за {duration_ms}ms")

    return _respond(
        BatchOCRResponse(results=[OCRResponse.from_result(r) for r in results]),
        status_code=200,
    )


def _respond(model: BaseModel, status_code: int) -> UnicodeJSONResponse:
    """Сериализует модель, пропуская пустые необязательные поля (err)."""
    return UnicodeJSONResponse(
        status_code=status_code,
        content=model.model_dump(exclude_none=True),
    )


@asynccontextmanager
async def _request_cancellation(request: Request) -> AsyncIterator[CancellationToken]:
    """
    Токен отмены на время обработки запроса.

    Срабатывает по дедлайну запроса или когда сервер сообщает о разрыве
    соединения (ASGI сообщение http.disconnect).
    """
    token = CancellationToken(timeout=settings.request_timeout_seconds)
    watcher = asyncio.create_task(_watch_disconnect(request, token))
    try:
        yield token
    finally:
        watcher.cancel()
        with suppress(asyncio.CancelledError):
            await watcher
        token.close()


async def _watch_disconnect(request: Request, token: CancellationToken) -> None:
    """Ждёт http.disconnect от сервера и отменяет токен. Тело к этому моменту уже прочитано."""
    while not token.cancelled:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            logger.info("Клиент закрыл соединение")
            token.cancel(CLIENT_DISCONNECTED)
            return


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Запуск Mock OCR Service на {settings.host}:{settings.port}")
    logger.info(
        f"Конфиг: задержка {settings.min_delay_ms}-{settings.max_delay_ms}ms, "
        f"дедлайн запроса {settings.request_timeout_seconds}s"
    )

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
