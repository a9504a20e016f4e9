"""
Общие фикстуры тестов mock OCR сервиса.

Задержки процессора в тестах: миллисекунды вместо секунд.
"""

import asyncio
import random
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from ocr_mock.errors import ItemTimeout
from ocr_mock.main import app, get_processor
from ocr_mock.schemas import RecognitionResult
from ocr_mock.services.cancellation import CancellationToken, sleep_unless_cancelled
from ocr_mock.services.item_processor import ItemProcessor


class ScriptedProcessor:
    """
    Процессор с заданной задержкой (и, при желании, ошибкой) для каждого ключа.

    Ожидание устроено так же, как в ItemProcessor: таймер против токена.
    """

    def __init__(
        self,
        delays: dict[str, float],
        failures: Optional[dict[str, Exception]] = None,
        default_delay: float = 0.01,
        cleanup_delay: float = 0.0,
    ):
        self.delays = delays
        self.failures = failures or {}
        self.default_delay = default_delay
        self.cleanup_delay = cleanup_delay
        self.calls: list[str] = []
        self.finished: list[str] = []

    async def process(
        self,
        token: CancellationToken,
        key: str,
        locator: str,
    ) -> RecognitionResult:
        self.calls.append(key)
        try:
            if not await sleep_unless_cancelled(token, self.delays.get(key, self.default_delay)):
                raise ItemTimeout(key)
            if key in self.failures:
                raise self.failures[key]
            return RecognitionResult(key=key, status_code=200, text=f"text for {key}")
        finally:
            # Освобождение ресурсов тоже занимает время
            if self.cleanup_delay:
                await asyncio.sleep(self.cleanup_delay)
            self.finished.append(key)


@pytest.fixture
def scripted_processor():
    return ScriptedProcessor


@pytest.fixture
def fast_processor() -> ItemProcessor:
    return ItemProcessor(min_delay_ms=5, max_delay_ms=20, rng=random.Random(42))


@pytest.fixture
def slow_processor() -> ItemProcessor:
    return ItemProcessor(min_delay_ms=5000, max_delay_ms=5000)


@pytest.fixture
def client(fast_processor):
    app.dependency_overrides[get_processor] = lambda: fast_processor
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def assert_coherent(result) -> None:
    """Текст и ошибка не заполнены одновременно, статус согласован с ними."""
    assert not (result.text and result.error)
    if result.status_code == 200:
        assert result.text
        assert not result.error
    else:
        assert result.error
        assert result.text == ""


@pytest.fixture
def check_coherent():
    return assert_coherent
